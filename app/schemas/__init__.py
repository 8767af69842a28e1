"""
Pydantic request/response models for the admin configuration API.
"""

from .config import (
    ModelCloneRequest,
    ModelProviderResponse,
    ModelResponse,
    PaginatedResponse,
    Pagination,
    ProviderResponse,
)
from .config_transfer import (
    EntityOutcome,
    ImportResponse,
    ImportResult,
    ImportRowError,
    ImportSummary,
)

__all__ = [
    "EntityOutcome",
    "ImportResponse",
    "ImportResult",
    "ImportRowError",
    "ImportSummary",
    "ModelCloneRequest",
    "ModelProviderResponse",
    "ModelResponse",
    "PaginatedResponse",
    "Pagination",
    "ProviderResponse",
]
