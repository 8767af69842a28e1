from __future__ import annotations

import asyncio
import json
import re
from io import BytesIO
from zipfile import ZipFile

import yaml
from openpyxl import load_workbook

from app.settings import settings
from tests.utils import build_json, build_workbook

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _scenario_workbook() -> bytes:
    return build_workbook(
        {
            "Providers": [
                ["name", "type", "weight", "enabled"],
                ["openai-1", "openai", 1, True],
            ],
            "Models": [
                ["name", "maxRetry", "timeout"],
                ["gpt-4", 3, 30],
            ],
            "ModelProviderMappings": [
                ["model", "provider", "providerModel", "weight"],
                ["gpt-4", "openai-1", "gpt-4-0613", 1],
            ],
        }
    )


def test_upload_workbook_imports_everything(client, fake_redis):
    resp = client.post(
        "/admin/import/config/upload",
        files={"file": ("config.xlsx", _scenario_workbook(), XLSX)},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["filename"] == "config.xlsx"
    assert body["result"] == {
        "providers": {"total": 1, "imported": 1, "skipped": 0, "errors": []},
        "models": {"total": 1, "imported": 1, "skipped": 0, "errors": []},
        "modelProviderMappings": {"total": 1, "imported": 1, "skipped": 0, "errors": []},
        "summary": {"total_imported": 3, "total_skipped": 0, "total_errors": 0},
    }
    assert asyncio.run(fake_redis.get(settings.config_version_key)) == "1"


def test_reupload_is_all_skipped_and_does_not_bump_version(client, fake_redis):
    files = {"file": ("config.xlsx", _scenario_workbook(), XLSX)}
    client.post("/admin/import/config/upload", files=files)

    resp = client.post("/admin/import/all", files={"file": ("config.xlsx", _scenario_workbook(), XLSX)})

    assert resp.status_code == 200
    summary = resp.json()["result"]["summary"]
    assert summary == {"total_imported": 0, "total_skipped": 3, "total_errors": 0}
    assert asyncio.run(fake_redis.get(settings.config_version_key)) == "1"


def test_unresolved_provider_is_reported_per_row(client):
    document = {
        "models": [{"name": "gpt-4"}],
        "modelProviderMappings": [
            {"model": "gpt-4", "provider": "does-not-exist", "providerModel": "gpt-4-0613"}
        ],
    }

    resp = client.post(
        "/admin/import/config/upload",
        files={"file": ("config.json", build_json(document), "application/json")},
    )

    assert resp.status_code == 200
    result = resp.json()["result"]
    assert result["summary"]["total_errors"] == 1
    error = result["modelProviderMappings"]["errors"][0]
    assert error["row"] == 2
    assert error["field"] == "provider"
    assert "does-not-exist" in error["error"]


def test_upload_unsupported_extension_returns_415(client):
    resp = client.post(
        "/admin/import/config/upload",
        files={"file": ("config.csv", b"name,type\np1,openai\n", "text/csv")},
    )

    assert resp.status_code == 415
    assert resp.json()["detail"]["error"] == "unsupported_format"


def test_upload_malformed_json_returns_400(client):
    resp = client.post(
        "/admin/import/config/upload",
        files={"file": ("config.json", b"{broken", "application/json")},
    )

    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["error"] == "malformed_input"
    assert detail["code"] == 400


def test_upload_corrupt_workbook_returns_400(client):
    buffer = BytesIO()
    with ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", "<not-closed")

    resp = client.post(
        "/admin/import/config/upload",
        files={"file": ("config.xlsx", buffer.getvalue(), XLSX)},
    )

    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "malformed_input"


def test_upload_too_large_returns_413(client, monkeypatch):
    monkeypatch.setattr(settings, "import_max_upload_bytes", 16)

    resp = client.post(
        "/admin/import/config/upload",
        files={"file": ("config.json", build_json({"providers": []}) + b" " * 32, "application/json")},
    )

    assert resp.status_code == 413
    assert resp.json()["detail"]["error"] == "payload_too_large"


def test_upload_without_file_is_validation_error(client):
    resp = client.post("/admin/import/config/upload")

    assert resp.status_code == 422


def test_template_download_with_sample(client):
    resp = client.get("/admin/export/template", params={"withSample": "true"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith(XLSX)
    disposition = resp.headers["content-disposition"]
    assert re.search(r'filename="config_template_\d{8}_\d{6}\.xlsx"', disposition)

    workbook = load_workbook(BytesIO(resp.content))
    assert workbook.sheetnames == ["Providers", "Models", "ModelProviderMappings"]
    assert workbook["Providers"].max_row == 3


def test_template_download_as_yaml_without_sample(client):
    resp = client.get("/admin/export/template", params={"format": "yaml", "with_sample": "false"})

    assert resp.status_code == 200
    assert ".yaml" in resp.headers["content-disposition"]
    assert yaml.safe_load(resp.text) == {"providers": [], "models": [], "modelProviderMappings": []}


def test_export_unknown_format_returns_415(client):
    resp = client.get("/admin/export/config", params={"format": "csv"})

    assert resp.status_code == 415


def test_export_then_reimport_is_all_skipped(client):
    client.post(
        "/admin/import/config/upload",
        files={"file": ("config.xlsx", _scenario_workbook(), XLSX)},
    )

    exported = client.get("/admin/export/config", params={"format": "json"})
    assert exported.status_code == 200
    assert re.search(r'config_export_\d{8}_\d{6}\.json', exported.headers["content-disposition"])
    document = json.loads(exported.content)
    assert document["modelProviderMappings"][0]["provider"] == "openai-1"

    resp = client.post(
        "/admin/import/config/upload",
        files={"file": ("export.json", exported.content, "application/json")},
    )

    assert resp.json()["result"]["summary"] == {
        "total_imported": 0,
        "total_skipped": 3,
        "total_errors": 0,
    }


def test_export_all_alias_defaults_to_workbook(client):
    resp = client.get("/admin/export/all")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith(XLSX)
