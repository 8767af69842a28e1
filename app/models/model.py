from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, String, text
from sqlalchemy.orm import Mapped, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Model(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Client-facing model name; routed to providers through ModelProvider rows."""

    __tablename__ = "models"

    name: Mapped[str] = Column(String(100), unique=True, nullable=False, index=True)
    remark: Mapped[str | None] = Column(String(255), nullable=True)
    max_retry: Mapped[int] = Column(Integer, nullable=False, server_default=text("3"), default=3)
    timeout: Mapped[int] = Column(
        Integer, nullable=False, server_default=text("30"), default=30, doc="请求超时（秒）"
    )
    enabled: Mapped[bool] = Column(Boolean, nullable=False, server_default=text("true"), default=True)

    mappings: Mapped[list["ModelProvider"]] = relationship(
        "ModelProvider",
        back_populates="model",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


__all__ = ["Model"]
