"""Custom exception hierarchy for Lighthouse."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class LighthouseException(Exception):
    """Base exception type for all Lighthouse errors."""

    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        if not self.context:
            return self.message
        return f"{self.message} | context={self.context}"


class ConfigurationError(LighthouseException):
    """Raised when configuration (pricing table, overrides, settings) is invalid."""


# -----------------------------------------------------------------------------
# Analysis taxonomy
# -----------------------------------------------------------------------------


class MalformedGraphError(LighthouseException):
    """Workflow structure cannot be reconstructed (missing or ambiguous entry step).

    The analysis recovers from this locally; the error is only raised by
    callers that ask for a strict chain.
    """


class UnrecognizedPlanError(LighthouseException):
    """Plan family tag is not present in the pricing table."""


class InvalidInputError(LighthouseException):
    """The workflow batch cannot be analysed as given, e.g. duplicate workflow ids."""


class AuditValidationError(LighthouseException):
    """Assembled audit result failed validation. Fatal to the analysis call."""


class UnrecognizedResultError(LighthouseException):
    """An audit result payload carries a schema version this code does not know."""


# -----------------------------------------------------------------------------
# Ingestion
# -----------------------------------------------------------------------------


class ExportParseError(LighthouseException):
    """Raised when an export bundle cannot be read or parsed."""
