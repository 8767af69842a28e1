import logging

from fastapi.testclient import TestClient

from app.api.v1 import admin_config_routes
from app.logging_config import APP_LOGGER_NAME


def test_failing_list_endpoint_returns_structured_error(app_with_inmemory_db, monkeypatch, caplog):
    app, _ = app_with_inmemory_db

    def broken_list_providers(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(admin_config_routes, "list_providers", broken_list_providers)

    with caplog.at_level(logging.ERROR, logger=APP_LOGGER_NAME):
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/admin/providers")

    assert response.status_code == 500
    payload = response.json()
    assert payload["error_code"] == "internal_error"
    assert payload["message"] == "服务器内部错误，请稍后再试"
    error_id = payload["error_id"]
    assert any(
        f"error_id={error_id}" in record.getMessage() and "/admin/providers" in record.getMessage()
        for record in caplog.records
    )
