"""
Export serializer: snapshot the configuration store into the IR.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.services import config_store

from .ir import ConfigIR, Section


@dataclass(frozen=True)
class SnapshotFilter:
    enabled_only: bool = False


def snapshot(session: Session, snapshot_filter: SnapshotFilter | None = None) -> ConfigIR:
    """Read every provider, model and mapping, oldest first, into a ConfigIR."""
    snapshot_filter = snapshot_filter or SnapshotFilter()
    enabled_only = snapshot_filter.enabled_only
    ir = ConfigIR()

    providers, _ = config_store.list_providers(session, enabled_only=enabled_only)
    for provider in providers:
        ir.add(
            Section.PROVIDERS,
            {
                "name": provider.name,
                "type": provider.provider_type,
                "config": dict(provider.config or {}),
                "enabled": provider.enabled,
                "weight": provider.weight,
                "consoleUrl": provider.console_url,
            },
        )

    models, _ = config_store.list_models(session, enabled_only=enabled_only)
    for model in models:
        ir.add(
            Section.MODELS,
            {
                "name": model.name,
                "remark": model.remark,
                "maxRetry": model.max_retry,
                "timeout": model.timeout,
                "enabled": model.enabled,
            },
        )

    mappings, _ = config_store.list_model_providers(session, enabled_only=enabled_only)
    for mapping in mappings:
        ir.add(
            Section.MAPPINGS,
            {
                "model": mapping.model.name,
                "provider": mapping.provider.name,
                "providerModel": mapping.provider_model,
                "toolCall": mapping.tool_call,
                "structuredOutput": mapping.structured_output,
                "image": mapping.image,
                "weight": mapping.weight,
                "enabled": mapping.enabled,
            },
        )

    return ir


# Sample rows import cleanly into an empty store.
_SAMPLE_PROVIDERS = (
    {
        "name": "openai-main",
        "type": "openai",
        "config": {
            "baseUrl": "https://api.openai.com/v1",
            "apiKey": "sk-your-api-key",
            "timeout": 60,
            "maxRetries": 3,
        },
        "enabled": True,
        "weight": 10,
        "consoleUrl": "https://platform.openai.com",
    },
    {
        "name": "anthropic-main",
        "type": "anthropic",
        "config": {
            "baseUrl": "https://api.anthropic.com",
            "apiKey": "sk-ant-your-api-key",
            "timeout": 60,
            "maxRetries": 3,
        },
        "enabled": True,
        "weight": 5,
        "consoleUrl": "https://console.anthropic.com",
    },
)

_SAMPLE_MODELS = (
    {"name": "gpt-4o", "remark": "通用对话模型", "maxRetry": 3, "timeout": 30, "enabled": True},
    {"name": "claude-3-5-sonnet", "remark": "长上下文模型", "maxRetry": 2, "timeout": 60, "enabled": True},
)

_SAMPLE_MAPPINGS = (
    {
        "model": "gpt-4o",
        "provider": "openai-main",
        "providerModel": "gpt-4o-2024-08-06",
        "toolCall": True,
        "structuredOutput": True,
        "image": True,
        "weight": 1,
        "enabled": True,
    },
    {
        "model": "claude-3-5-sonnet",
        "provider": "anthropic-main",
        "providerModel": "claude-3-5-sonnet-20241022",
        "toolCall": True,
        "structuredOutput": False,
        "image": True,
        "weight": 1,
        "enabled": True,
    },
)


def template_snapshot(with_sample: bool = False) -> ConfigIR:
    """Empty sections (header only) or a small illustrative configuration."""
    ir = ConfigIR()
    if not with_sample:
        return ir
    for section, samples in (
        (Section.PROVIDERS, _SAMPLE_PROVIDERS),
        (Section.MODELS, _SAMPLE_MODELS),
        (Section.MAPPINGS, _SAMPLE_MAPPINGS),
    ):
        for sample in samples:
            ir.add(section, {key: (dict(value) if isinstance(value, dict) else value) for key, value in sample.items()})
    return ir


__all__ = ["SnapshotFilter", "snapshot", "template_snapshot"]
