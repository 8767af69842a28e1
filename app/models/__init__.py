from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from .model import Model
from .model_provider import ModelProvider
from .provider import Provider

__all__ = [
    "Base",
    "Model",
    "ModelProvider",
    "Provider",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
]
