"""Lighthouse - efficiency audits for automation workflow exports."""

from typing import TYPE_CHECKING

__all__ = ["AnalysisConfig", "AuditResult", "Settings", "Workflow", "analyze"]

if TYPE_CHECKING:
    from .analysis.engine import analyze
    from .config.settings import AnalysisConfig, Settings
    from .core.models import Workflow
    from .core.results import AuditResult


def __getattr__(name: str):
    if name == "analyze":
        from .analysis.engine import analyze

        return analyze
    if name in ("AnalysisConfig", "Settings"):
        from .config import settings

        return getattr(settings, name)
    if name == "Workflow":
        from .core.models import Workflow

        return Workflow
    if name == "AuditResult":
        from .core.results import AuditResult

        return AuditResult
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
