"""Create providers, models and model_providers tables."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_create_config_tables"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "providers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column(
            "config",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("weight", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("console_url", sa.String(length=255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_providers_name", "providers", ["name"], unique=True)

    op.create_table(
        "models",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("remark", sa.String(length=255), nullable=True),
        sa.Column("max_retry", sa.Integer(), nullable=False, server_default=sa.text("3")),
        sa.Column("timeout", sa.Integer(), nullable=False, server_default=sa.text("30")),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_models_name", "models", ["name"], unique=True)

    op.create_table(
        "model_providers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("model_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("provider_model", sa.String(length=100), nullable=False),
        sa.Column("tool_call", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("structured_output", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("image", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("weight", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.ForeignKeyConstraint(("model_id",), ("models.id",), ondelete="CASCADE"),
        sa.ForeignKeyConstraint(("provider_id",), ("providers.id",), ondelete="CASCADE"),
        sa.UniqueConstraint(
            "model_id",
            "provider_id",
            "provider_model",
            name="uq_model_providers_model_provider_model",
        ),
    )
    op.create_index("ix_model_providers_model_id", "model_providers", ["model_id"], unique=False)
    op.create_index(
        "ix_model_providers_provider_id", "model_providers", ["provider_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_model_providers_provider_id", table_name="model_providers")
    op.drop_index("ix_model_providers_model_id", table_name="model_providers")
    op.drop_table("model_providers")
    op.drop_index("ix_models_name", table_name="models")
    op.drop_table("models")
    op.drop_index("ix_providers_name", table_name="providers")
    op.drop_table("providers")
