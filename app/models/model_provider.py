from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ModelProvider(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Routes a Model to a Provider under the provider-side model identifier."""

    __tablename__ = "model_providers"
    __table_args__ = (
        UniqueConstraint(
            "model_id",
            "provider_id",
            "provider_model",
            name="uq_model_providers_model_provider_model",
        ),
    )

    model_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("models.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider_model: Mapped[str] = Column(String(100), nullable=False)
    tool_call: Mapped[bool] = Column(Boolean, nullable=False, server_default=text("true"), default=True)
    structured_output: Mapped[bool] = Column(
        Boolean, nullable=False, server_default=text("true"), default=True
    )
    image: Mapped[bool] = Column(Boolean, nullable=False, server_default=text("false"), default=False)
    weight: Mapped[int] = Column(Integer, nullable=False, server_default=text("1"), default=1)
    enabled: Mapped[bool] = Column(Boolean, nullable=False, server_default=text("true"), default=True)

    model: Mapped["Model"] = relationship("Model", back_populates="mappings")
    provider: Mapped["Provider"] = relationship("Provider", back_populates="mappings")


__all__ = ["ModelProvider"]
