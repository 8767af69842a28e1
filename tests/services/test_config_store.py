from __future__ import annotations

import uuid

import pytest

from app.services.config_store import (
    DuplicateKeyError,
    ModelNameExistsError,
    ModelNotFoundError,
    clone_model,
    create_model,
    create_model_provider,
    create_provider,
    list_model_providers,
    list_providers,
    load_mapping_keys,
)


def test_create_provider_rejects_duplicate_name(db_session) -> None:
    create_provider(db_session, name="p1", provider_type="openai", config={})

    with pytest.raises(DuplicateKeyError):
        create_provider(db_session, name="p1", provider_type="gemini", config={})

    # Session is usable again after the rollback.
    create_provider(db_session, name="p2", provider_type="gemini", config={})
    items, total = list_providers(db_session)
    assert total == 2
    assert {item.name for item in items} == {"p1", "p2"}


def test_list_providers_paginates(db_session) -> None:
    for index in range(5):
        create_provider(db_session, name=f"p{index}", provider_type="openai", config={})

    items, total = list_providers(db_session, page=2, page_size=2)

    assert total == 5
    assert len(items) == 2


def test_mapping_keys_use_names(db_session) -> None:
    provider = create_provider(db_session, name="openai-1", provider_type="openai", config={})
    model = create_model(db_session, name="gpt-4")
    create_model_provider(
        db_session, model_id=model.id, provider_id=provider.id, provider_model="gpt-4-0613"
    )

    assert load_mapping_keys(db_session) == {("gpt-4", "openai-1", "gpt-4-0613")}


def test_clone_model_copies_fields_and_mappings(db_session) -> None:
    provider = create_provider(db_session, name="openai-1", provider_type="openai", config={})
    source = create_model(db_session, name="gpt-4", remark="源模型", max_retry=5, timeout=90)
    create_model_provider(
        db_session,
        model_id=source.id,
        provider_id=provider.id,
        provider_model="gpt-4-0613",
        image=True,
        weight=3,
    )

    clone = clone_model(db_session, source.id, "  gpt-4-copy ")

    assert clone.id != source.id
    assert clone.name == "gpt-4-copy"
    assert (clone.remark, clone.max_retry, clone.timeout) == ("源模型", 5, 90)
    assert len(clone.mappings) == 1
    mapping = clone.mappings[0]
    assert mapping.provider_id == provider.id
    assert (mapping.provider_model, mapping.image, mapping.weight) == ("gpt-4-0613", True, 3)

    _, total = list_model_providers(db_session)
    assert total == 2


def test_clone_model_errors(db_session) -> None:
    source = create_model(db_session, name="gpt-4")
    create_model(db_session, name="taken")

    with pytest.raises(ModelNotFoundError):
        clone_model(db_session, uuid.uuid4(), "anything")
    with pytest.raises(ModelNameExistsError):
        clone_model(db_session, source.id, "taken")
