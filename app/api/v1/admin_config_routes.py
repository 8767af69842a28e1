from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.deps import get_db
from app.errors import bad_request, conflict, not_found
from app.models import ModelProvider
from app.schemas import (
    ModelCloneRequest,
    ModelProviderResponse,
    ModelResponse,
    PaginatedResponse,
    Pagination,
    ProviderResponse,
)
from app.services.config_store import (
    ModelNameExistsError,
    ModelNotFoundError,
    clone_model,
    list_model_providers,
    list_models,
    list_providers,
)

router = APIRouter(tags=["admin-config"])

_PAGE = Query(1, ge=1, description="页码，从 1 开始")
_PAGE_SIZE = Query(20, ge=1, le=200, description="每页条数")


def _to_mapping_response(mapping: ModelProvider) -> ModelProviderResponse:
    return ModelProviderResponse(
        id=mapping.id,
        model_id=mapping.model_id,
        model_name=mapping.model.name,
        provider_id=mapping.provider_id,
        provider_name=mapping.provider.name,
        provider_type=mapping.provider.provider_type,
        provider_model=mapping.provider_model,
        weight=mapping.weight,
        tool_call=mapping.tool_call,
        structured_output=mapping.structured_output,
        image=mapping.image,
        enabled=mapping.enabled,
        created_at=mapping.created_at,
        updated_at=mapping.updated_at,
    )


@router.get("/admin/providers", response_model=PaginatedResponse[ProviderResponse])
def list_providers_endpoint(
    page: int = _PAGE,
    page_size: int = _PAGE_SIZE,
    db: Session = Depends(get_db),
) -> PaginatedResponse[ProviderResponse]:
    items, total = list_providers(db, page=page, page_size=page_size)
    return PaginatedResponse[ProviderResponse](
        data=[ProviderResponse.model_validate(item) for item in items],
        pagination=Pagination(page=page, page_size=page_size, total=total),
    )


@router.get("/admin/models", response_model=PaginatedResponse[ModelResponse])
def list_models_endpoint(
    page: int = _PAGE,
    page_size: int = _PAGE_SIZE,
    db: Session = Depends(get_db),
) -> PaginatedResponse[ModelResponse]:
    items, total = list_models(db, page=page, page_size=page_size)
    return PaginatedResponse[ModelResponse](
        data=[ModelResponse.model_validate(item) for item in items],
        pagination=Pagination(page=page, page_size=page_size, total=total),
    )


@router.get("/admin/model-providers", response_model=PaginatedResponse[ModelProviderResponse])
def list_model_providers_endpoint(
    page: int = _PAGE,
    page_size: int = _PAGE_SIZE,
    db: Session = Depends(get_db),
) -> PaginatedResponse[ModelProviderResponse]:
    items, total = list_model_providers(db, page=page, page_size=page_size)
    return PaginatedResponse[ModelProviderResponse](
        data=[_to_mapping_response(item) for item in items],
        pagination=Pagination(page=page, page_size=page_size, total=total),
    )


@router.post(
    "/admin/models/{model_id}/clone",
    response_model=ModelResponse,
    status_code=status.HTTP_201_CREATED,
)
def clone_model_endpoint(
    model_id: UUID,
    payload: ModelCloneRequest,
    db: Session = Depends(get_db),
) -> ModelResponse:
    """
    复制模型（连同其 Provider 映射）到新的名称下。
    """
    if not payload.name.strip():
        raise bad_request("模型名称不能为空")
    try:
        model = clone_model(db, model_id, payload.name)
    except ModelNotFoundError as exc:
        raise not_found("模型不存在") from exc
    except ModelNameExistsError as exc:
        raise conflict(str(exc)) from exc
    return ModelResponse.model_validate(model)


__all__ = ["router"]
