"""Named failures raised by the systemic-risk pipeline."""

from __future__ import annotations

from typing import Any


class SystemicRiskError(Exception):
    """Base class for all pipeline failures."""


class PreconditionError(SystemicRiskError, ValueError):
    """Input data cannot support the computation (fatal for the whole run)."""


class ModelFitError(SystemicRiskError):
    """The volatility/correlation model could not be fitted for a firm.

    ``firm`` is filled in by the pipeline once the failure leaves the
    per-firm computation; low-level estimators raise it with ``firm=None``.
    """

    def __init__(self, message: str, firm: str | None = None) -> None:
        super().__init__(message)
        self.firm = firm


class ExportError(SystemicRiskError):
    """The result sink could not persist a completed result.

    The computed result is attached so the caller can retry the export.
    """

    def __init__(self, message: str, result: Any = None) -> None:
        super().__init__(message)
        self.result = result
