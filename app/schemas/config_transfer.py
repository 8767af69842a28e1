from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ImportRowError(BaseModel):
    row: int = Field(..., description="出错行号（1 起，含表头行）")
    field: str = Field(..., description="出错字段名；行级写入失败时为空字符串")
    error: str = Field(..., description="可读的错误原因")


class EntityOutcome(BaseModel):
    total: int = 0
    imported: int = 0
    skipped: int = 0
    errors: List[ImportRowError] = Field(default_factory=list)


class ImportSummary(BaseModel):
    total_imported: int = 0
    total_skipped: int = 0
    total_errors: int = 0


class ImportResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    providers: EntityOutcome
    models: EntityOutcome
    model_provider_mappings: EntityOutcome = Field(..., alias="modelProviderMappings")
    summary: ImportSummary


class ImportResponse(BaseModel):
    filename: str
    result: ImportResult


__all__ = [
    "EntityOutcome",
    "ImportResponse",
    "ImportResult",
    "ImportRowError",
    "ImportSummary",
]
