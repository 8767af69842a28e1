from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, List, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        protected_namespaces=(),
    )


class ProviderResponse(_CamelModel):
    id: UUID
    name: str
    provider_type: str
    config: dict[str, Any] = Field(default_factory=dict)
    enabled: bool
    weight: int
    console_url: str | None = None
    created_at: datetime
    updated_at: datetime


class ModelResponse(_CamelModel):
    id: UUID
    name: str
    remark: str | None = None
    max_retry: int
    timeout: int
    enabled: bool
    created_at: datetime
    updated_at: datetime


class ModelProviderResponse(_CamelModel):
    id: UUID
    model_id: UUID
    model_name: str
    provider_id: UUID
    provider_name: str
    provider_type: str
    provider_model: str
    weight: int
    tool_call: bool
    structured_output: bool
    image: bool
    enabled: bool
    created_at: datetime
    updated_at: datetime


class ModelCloneRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="克隆后的新模型名称")


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int


class PaginatedResponse(BaseModel, Generic[T]):
    """List endpoints share one envelope: {data, pagination}."""

    data: List[T]
    pagination: Pagination


__all__ = [
    "ModelCloneRequest",
    "ModelProviderResponse",
    "ModelResponse",
    "PaginatedResponse",
    "Pagination",
    "ProviderResponse",
]
