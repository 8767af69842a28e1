from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, String, text
from sqlalchemy.orm import Mapped, relationship

from app.db.types import JSONBCompat

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Provider(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Upstream LLM provider: credentials and connection settings live in `config`."""

    __tablename__ = "providers"

    name: Mapped[str] = Column(String(100), unique=True, nullable=False, index=True)
    provider_type: Mapped[str] = Column(
        "type",
        String(32),
        nullable=False,
        doc="上游协议类型：openai/anthropic/gemini/azure/deepseek/ollama",
    )
    config = Column(
        JSONBCompat(),
        nullable=False,
        default=dict,
        doc="不透明的连接配置：baseUrl / timeout / maxRetries / apiKey 等",
    )
    enabled: Mapped[bool] = Column(Boolean, nullable=False, server_default=text("true"), default=True)
    weight: Mapped[int] = Column(Integer, nullable=False, server_default=text("1"), default=1)
    console_url: Mapped[str | None] = Column(String(255), nullable=True)

    mappings: Mapped[list["ModelProvider"]] = relationship(
        "ModelProvider",
        back_populates="provider",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


__all__ = ["Provider"]
