from __future__ import annotations

import pytest

from app.services import config_store
from app.transfer import ReconciliationEngine, SnapshotFilter, build_result, resolve, snapshot, template_snapshot
from app.transfer.formats import get_adapter
from app.transfer.ir import Section


def _seed(session) -> None:
    openai = config_store.create_provider(
        session,
        name="openai-1",
        provider_type="openai",
        config={"baseUrl": "https://api.openai.com/v1", "apiKey": "sk-test"},
        console_url="https://platform.openai.com",
    )
    backup = config_store.create_provider(
        session, name="backup", provider_type="deepseek", config={}, enabled=False, weight=0
    )
    gpt = config_store.create_model(session, name="gpt-4", remark="默认模型")
    config_store.create_model_provider(
        session, model_id=gpt.id, provider_id=openai.id, provider_model="gpt-4-0613", image=True
    )
    config_store.create_model_provider(
        session, model_id=gpt.id, provider_id=backup.id, provider_model="deepseek-chat"
    )


def _reimport(session, fmt: str):
    adapter = get_adapter(fmt)
    ir = adapter.parse(adapter.render(snapshot(session)))
    batch, index = resolve(ir, session)
    return build_result(ReconciliationEngine(session, index).apply(batch))


def test_snapshot_uses_names_for_mapping_references(db_session):
    _seed(db_session)

    ir = snapshot(db_session)

    providers = {row.fields["name"]: row.fields for row in ir.providers}
    assert set(providers) == {"openai-1", "backup"}
    assert providers["openai-1"]["config"]["apiKey"] == "sk-test"
    first = next(row.fields for row in ir.mappings if row.fields["providerModel"] == "gpt-4-0613")
    assert first["model"] == "gpt-4"
    assert first["provider"] == "openai-1"
    assert first["providerModel"] == "gpt-4-0613"
    assert first["image"] is True


def test_snapshot_enabled_only_drops_disabled_entities_and_their_mappings(db_session):
    _seed(db_session)

    ir = snapshot(db_session, SnapshotFilter(enabled_only=True))

    assert [row.fields["name"] for row in ir.providers] == ["openai-1"]
    assert [row.fields["provider"] for row in ir.mappings] == ["openai-1"]


@pytest.mark.parametrize("fmt", ["xlsx", "json", "yaml"])
def test_export_then_import_skips_everything(db_session, fmt):
    _seed(db_session)

    result = _reimport(db_session, fmt)

    assert result.summary.total_imported == 0
    assert result.summary.total_errors == 0
    assert result.summary.total_skipped == 5


def test_template_without_sample_has_only_headers():
    ir = template_snapshot(with_sample=False)

    assert ir.is_empty()


def test_template_samples_import_cleanly_into_an_empty_store(db_session):
    ir = template_snapshot(with_sample=True)
    assert len(ir.rows(Section.PROVIDERS)) == 2
    assert len(ir.rows(Section.MODELS)) == 2
    assert len(ir.rows(Section.MAPPINGS)) == 2

    adapter = get_adapter("xlsx")
    parsed = adapter.parse(adapter.render(ir))
    batch, index = resolve(parsed, db_session)
    result = build_result(ReconciliationEngine(db_session, index).apply(batch))

    assert result.summary.total_imported == 6
    assert result.summary.total_errors == 0
