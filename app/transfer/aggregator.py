from __future__ import annotations

from app.schemas.config_transfer import ImportResult, ImportSummary

from .engine import ImportReport


def aggregate(report: ImportReport) -> ImportSummary:
    outcomes = (report.providers, report.models, report.model_provider_mappings)
    return ImportSummary(
        total_imported=sum(outcome.imported for outcome in outcomes),
        total_skipped=sum(outcome.skipped for outcome in outcomes),
        total_errors=sum(len(outcome.errors) for outcome in outcomes),
    )


def build_result(report: ImportReport) -> ImportResult:
    return ImportResult(
        providers=report.providers,
        models=report.models,
        model_provider_mappings=report.model_provider_mappings,
        summary=aggregate(report),
    )


__all__ = ["aggregate", "build_result"]
