from __future__ import annotations

from typing import Any, List, Tuple
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.logging_config import logger
from app.models import Model, ModelProvider, Provider

MappingKey = Tuple[str, str, str]


class ConfigStoreError(RuntimeError):
    """Base error for configuration store operations."""


class DuplicateKeyError(ConfigStoreError):
    """Raised when a create hits a unique constraint (natural key already taken)."""


class ModelNotFoundError(ConfigStoreError):
    """Raised when model_id cannot be found."""


class ModelNameExistsError(ConfigStoreError):
    """Raised when the target model name is already used."""


def _commit_new(session: Session, obj: Any, what: str) -> None:
    session.add(obj)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.info("Create %s hit unique constraint: %s", what, exc.orig)
        raise DuplicateKeyError(f"{what} 已存在") from exc
    session.refresh(obj)


# ---------------------------------------------------------------------------
# Natural-key lookups
# ---------------------------------------------------------------------------


def load_provider_ids(session: Session) -> dict[str, UUID]:
    rows = session.execute(select(Provider.name, Provider.id)).all()
    return {name: provider_id for name, provider_id in rows}


def load_model_ids(session: Session) -> dict[str, UUID]:
    rows = session.execute(select(Model.name, Model.id)).all()
    return {name: model_id for name, model_id in rows}


def load_mapping_keys(session: Session) -> set[MappingKey]:
    stmt = (
        select(Model.name, Provider.name, ModelProvider.provider_model)
        .join(Model, ModelProvider.model_id == Model.id)
        .join(Provider, ModelProvider.provider_id == Provider.id)
    )
    return {(model, provider, provider_model) for model, provider, provider_model in session.execute(stmt).all()}


def find_provider_id(session: Session, name: str) -> UUID | None:
    return session.execute(select(Provider.id).where(Provider.name == name)).scalar_one_or_none()


def find_model_id(session: Session, name: str) -> UUID | None:
    return session.execute(select(Model.id).where(Model.name == name)).scalar_one_or_none()


# ---------------------------------------------------------------------------
# Create-if-absent
# ---------------------------------------------------------------------------


def create_provider(
    session: Session,
    *,
    name: str,
    provider_type: str,
    config: dict[str, Any],
    enabled: bool = True,
    weight: int = 1,
    console_url: str | None = None,
) -> Provider:
    provider = Provider(
        name=name,
        provider_type=provider_type,
        config=config,
        enabled=enabled,
        weight=weight,
        console_url=console_url,
    )
    _commit_new(session, provider, f"Provider {name}")
    return provider


def create_model(
    session: Session,
    *,
    name: str,
    remark: str | None = None,
    max_retry: int = 3,
    timeout: int = 30,
    enabled: bool = True,
) -> Model:
    model = Model(name=name, remark=remark, max_retry=max_retry, timeout=timeout, enabled=enabled)
    _commit_new(session, model, f"Model {name}")
    return model


def create_model_provider(
    session: Session,
    *,
    model_id: UUID,
    provider_id: UUID,
    provider_model: str,
    tool_call: bool = True,
    structured_output: bool = True,
    image: bool = False,
    weight: int = 1,
    enabled: bool = True,
) -> ModelProvider:
    mapping = ModelProvider(
        model_id=model_id,
        provider_id=provider_id,
        provider_model=provider_model,
        tool_call=tool_call,
        structured_output=structured_output,
        image=image,
        weight=weight,
        enabled=enabled,
    )
    _commit_new(session, mapping, f"映射 {provider_model}")
    return mapping


# ---------------------------------------------------------------------------
# Listing / clone
# ---------------------------------------------------------------------------


def _page(session: Session, stmt: Select, count_stmt: Select, page: int, page_size: int) -> tuple[list, int]:
    total = session.execute(count_stmt).scalar_one()
    offset = (page - 1) * page_size
    items = list(session.execute(stmt.offset(offset).limit(page_size)).scalars().all())
    return items, int(total)


def list_providers(
    session: Session,
    *,
    page: int | None = None,
    page_size: int | None = None,
    enabled_only: bool = False,
) -> tuple[List[Provider], int]:
    stmt: Select[tuple[Provider]] = select(Provider).order_by(Provider.created_at, Provider.name)
    count_stmt = select(func.count()).select_from(Provider)
    if enabled_only:
        stmt = stmt.where(Provider.enabled.is_(True))
        count_stmt = count_stmt.where(Provider.enabled.is_(True))
    if page is None or page_size is None:
        items = list(session.execute(stmt).scalars().all())
        return items, len(items)
    return _page(session, stmt, count_stmt, page, page_size)


def list_models(
    session: Session,
    *,
    page: int | None = None,
    page_size: int | None = None,
    enabled_only: bool = False,
) -> tuple[List[Model], int]:
    stmt: Select[tuple[Model]] = select(Model).order_by(Model.created_at, Model.name)
    count_stmt = select(func.count()).select_from(Model)
    if enabled_only:
        stmt = stmt.where(Model.enabled.is_(True))
        count_stmt = count_stmt.where(Model.enabled.is_(True))
    if page is None or page_size is None:
        items = list(session.execute(stmt).scalars().all())
        return items, len(items)
    return _page(session, stmt, count_stmt, page, page_size)


def list_model_providers(
    session: Session,
    *,
    page: int | None = None,
    page_size: int | None = None,
    enabled_only: bool = False,
) -> tuple[List[ModelProvider], int]:
    """
    Mappings with their model/provider loaded. With `enabled_only` a mapping is
    kept only when it and both referents are enabled.
    """
    stmt: Select[tuple[ModelProvider]] = (
        select(ModelProvider)
        .options(selectinload(ModelProvider.model), selectinload(ModelProvider.provider))
        .order_by(ModelProvider.created_at, ModelProvider.provider_model)
    )
    count_stmt = select(func.count()).select_from(ModelProvider)
    if enabled_only:
        conditions = (
            ModelProvider.enabled.is_(True),
            Model.enabled.is_(True),
            Provider.enabled.is_(True),
        )
        stmt = (
            stmt.join(Model, ModelProvider.model_id == Model.id)
            .join(Provider, ModelProvider.provider_id == Provider.id)
            .where(*conditions)
        )
        count_stmt = (
            count_stmt.join(Model, ModelProvider.model_id == Model.id)
            .join(Provider, ModelProvider.provider_id == Provider.id)
            .where(*conditions)
        )
    if page is None or page_size is None:
        items = list(session.execute(stmt).scalars().all())
        return items, len(items)
    return _page(session, stmt, count_stmt, page, page_size)


def get_model(session: Session, model_id: UUID) -> Model:
    model = session.get(Model, model_id)
    if model is None:
        raise ModelNotFoundError(f"Model {model_id} not found")
    return model


def clone_model(session: Session, model_id: UUID, name: str) -> Model:
    """
    Copy a model under a new name together with its provider mappings.
    """
    source = get_model(session, model_id)
    name = name.strip()
    if find_model_id(session, name) is not None:
        raise ModelNameExistsError(f"模型名称 {name} 已存在")

    clone = Model(
        name=name,
        remark=source.remark,
        max_retry=source.max_retry,
        timeout=source.timeout,
        enabled=source.enabled,
    )
    for mapping in source.mappings:
        clone.mappings.append(
            ModelProvider(
                provider_id=mapping.provider_id,
                provider_model=mapping.provider_model,
                tool_call=mapping.tool_call,
                structured_output=mapping.structured_output,
                image=mapping.image,
                weight=mapping.weight,
                enabled=mapping.enabled,
            )
        )

    session.add(clone)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ModelNameExistsError(f"模型名称 {name} 已存在") from exc
    session.refresh(clone)
    logger.info("Cloned model %s -> %s with %d mappings", source.name, clone.name, len(clone.mappings))
    return clone


__all__ = [
    "ConfigStoreError",
    "DuplicateKeyError",
    "MappingKey",
    "ModelNameExistsError",
    "ModelNotFoundError",
    "clone_model",
    "create_model",
    "create_model_provider",
    "create_provider",
    "find_model_id",
    "find_provider_id",
    "get_model",
    "list_model_providers",
    "list_models",
    "list_providers",
    "load_mapping_keys",
    "load_model_ids",
    "load_provider_ids",
]
