from __future__ import annotations

import json
from io import BytesIO
from zipfile import ZipFile

import pytest
import yaml
from openpyxl import load_workbook

from app.transfer.errors import MalformedInputError, UnsupportedFormatError
from app.transfer.formats import (
    JsonAdapter,
    WorkbookAdapter,
    YamlAdapter,
    adapter_for_upload,
    get_adapter,
)
from app.transfer.ir import ConfigIR, Section
from tests.utils import build_json, build_workbook


def test_workbook_rows_are_numbered_like_the_spreadsheet():
    data = build_workbook(
        {
            "Providers": [
                ["name", "type", "weight"],
                ["p1", "openai", 1],
                [None, None, None],
                ["p2", "anthropic", 2],
            ],
        }
    )

    ir = WorkbookAdapter().parse(data)

    assert [row.row for row in ir.providers] == [2, 4]
    assert ir.providers[1].fields == {"name": "p2", "type": "anthropic", "weight": 2}
    assert ir.models == []
    assert ir.mappings == []


def test_workbook_headers_match_loosely_and_unknown_columns_are_ignored():
    data = build_workbook(
        {
            "model_provider_mappings": [
                ["Model", "PROVIDER", "provider_model", "Tool Call", "notes"],
                ["gpt-4", "openai-1", "gpt-4-0613", "false", "ignored"],
            ],
        }
    )

    ir = WorkbookAdapter().parse(data)

    assert ir.mappings[0].fields == {
        "model": "gpt-4",
        "provider": "openai-1",
        "providerModel": "gpt-4-0613",
        "toolCall": "false",
    }


def test_workbook_accepts_legacy_associations_sheet():
    data = build_workbook(
        {"Associations": [["model", "provider", "providerModel"], ["m", "p", "pm"]]}
    )

    ir = WorkbookAdapter().parse(data)

    assert ir.mappings[0].address.section is Section.MAPPINGS
    assert ir.mappings[0].row == 2


def test_workbook_without_known_sheets_is_malformed():
    data = build_workbook({"Sheet1": [["a", "b"], [1, 2]]})

    with pytest.raises(MalformedInputError):
        WorkbookAdapter().parse(data)


def test_workbook_garbage_bytes_are_malformed():
    with pytest.raises(MalformedInputError):
        WorkbookAdapter().parse(b"definitely not a zip archive")


def test_workbook_with_corrupt_xml_parts_is_malformed():
    buffer = BytesIO()
    with ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", "<not-closed")

    with pytest.raises(MalformedInputError):
        WorkbookAdapter().parse(buffer.getvalue())


def test_workbook_render_writes_header_and_compact_config():
    ir = ConfigIR()
    ir.add(
        Section.PROVIDERS,
        {"name": "p1", "type": "openai", "config": {"baseUrl": "https://x"}, "enabled": True, "weight": 1},
    )

    workbook = load_workbook(BytesIO(WorkbookAdapter().render(ir)))

    assert workbook.sheetnames == ["Providers", "Models", "ModelProviderMappings"]
    rows = list(workbook["Providers"].iter_rows(values_only=True))
    assert rows[0] == ("name", "type", "config", "enabled", "weight", "consoleUrl")
    assert rows[1][:5] == ("p1", "openai", '{"baseUrl":"https://x"}', True, 1)
    assert list(workbook["Models"].iter_rows(values_only=True)) == [
        ("name", "remark", "maxRetry", "timeout", "enabled")
    ]


def test_json_items_get_the_same_row_numbers_as_the_workbook():
    data = build_json(
        {
            "providers": [{"name": "p1", "type": "openai"}, {"name": "p2", "type": "gemini"}],
            "modelProviderMappings": [{"model": "m", "provider": "p1", "provider_model": "x"}],
            "extra": {"ignored": True},
        }
    )

    ir = JsonAdapter().parse(data)

    assert [row.row for row in ir.providers] == [2, 3]
    assert ir.mappings[0].fields["providerModel"] == "x"
    assert ir.models == []


def test_json_accepts_utf8_bom():
    data = "\ufeff" + json.dumps({"models": [{"name": "m1"}]})

    ir = JsonAdapter().parse(data.encode("utf-8"))

    assert ir.models[0].fields == {"name": "m1"}


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"   ",
        b"{not json",
        b"[1, 2, 3]",
        b'{"providers": {"name": "p1"}}',
        b'{"providers": ["p1"]}',
        b'{"unrelated": []}',
        "中文".encode("gbk"),
    ],
)
def test_json_bad_documents_are_malformed(payload: bytes):
    with pytest.raises(MalformedInputError):
        JsonAdapter().parse(payload)


def test_yaml_parse_and_render_keep_field_order_and_unicode():
    text = """
providers:
  - name: p1
    type: openai
    config:
      baseUrl: https://api.example.com
models:
  - name: m1
    remark: 中文备注
    maxRetry: 2
"""
    ir = YamlAdapter().parse(text.encode("utf-8"))
    assert ir.providers[0].fields["config"] == {"baseUrl": "https://api.example.com"}

    rendered = YamlAdapter().render(ir).decode("utf-8")
    assert "中文备注" in rendered
    document = yaml.safe_load(rendered)
    assert list(document) == ["providers", "models", "modelProviderMappings"]
    assert list(document["models"][0]) == ["name", "remark", "maxRetry", "timeout", "enabled"]
    assert document["modelProviderMappings"] == []


def test_yaml_syntax_error_is_malformed():
    with pytest.raises(MalformedInputError):
        YamlAdapter().parse(b"providers: [unclosed")


def test_json_render_is_pretty_and_keeps_non_ascii():
    ir = ConfigIR()
    ir.add(Section.MODELS, {"name": "m1", "remark": "说明"})

    rendered = JsonAdapter().render(ir).decode("utf-8")

    assert "说明" in rendered
    assert "\n  " in rendered
    assert json.loads(rendered)["models"][0]["name"] == "m1"


@pytest.mark.parametrize(
    ("filename", "content_type", "expected"),
    [
        ("config.xlsx", None, "xlsx"),
        ("CONFIG.JSON", "application/octet-stream", "json"),
        ("config.yml", None, "yaml"),
        ("config.yaml", "application/json", "yaml"),
        ("upload", "application/json; charset=utf-8", "json"),
        (None, "text/yaml", "yaml"),
    ],
)
def test_adapter_selected_by_extension_then_content_type(filename, content_type, expected):
    assert adapter_for_upload(filename, content_type).name == expected


@pytest.mark.parametrize(
    ("filename", "content_type"),
    [
        ("config.csv", "application/json"),
        ("config.xls", None),
        ("upload", "text/plain"),
        (None, None),
    ],
)
def test_unsupported_uploads_are_rejected(filename, content_type):
    with pytest.raises(UnsupportedFormatError):
        adapter_for_upload(filename, content_type)


def test_get_adapter_accepts_aliases():
    assert get_adapter("YML").name == "yaml"
    assert get_adapter(".json").name == "json"
    with pytest.raises(UnsupportedFormatError):
        get_adapter("csv")
