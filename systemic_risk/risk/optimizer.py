"""
Constrained Optimizer Module

The likelihood estimators only need "minimise f(x) subject to box bounds and
inequality constraints g(x) >= 0".  Any object with a compatible ``minimize``
method can be passed to them; ``ScipyOptimizer`` is the default backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

import numpy as np
import structlog
from scipy.optimize import minimize

logger = structlog.get_logger(__name__)

Objective = Callable[[np.ndarray], float]
Constraint = Callable[[np.ndarray], float]
Bounds = Sequence[tuple[float, float]]

_CONSTRAINED_METHODS = {"SLSQP", "trust-constr", "COBYLA", "COBYQA"}


@dataclass
class OptimizationResult:
    """Outcome of a minimisation run."""

    x: np.ndarray
    fun: float
    success: bool
    message: str
    iterations: int = 0


class Optimizer(Protocol):
    """Pluggable constrained minimiser used by the likelihood estimators."""

    def minimize(
        self,
        objective: Objective,
        x0: np.ndarray,
        bounds: Bounds,
        constraints: Sequence[Constraint] = (),
    ) -> OptimizationResult:
        ...


class ScipyOptimizer:
    """``scipy.optimize.minimize`` wrapper.

    Inequality constraints are passed as ``{"type": "ineq"}`` dicts for
    methods that support them.  For bound-only methods (e.g. L-BFGS-B) the
    constraints are enforced by returning a large objective value from any
    infeasible point.
    """

    def __init__(
        self,
        method: str = "SLSQP",
        max_iter: int = 1000,
        tol: float = 1e-6,
        penalty: float = 1e10,
    ) -> None:
        self.method = method
        self.max_iter = max_iter
        self.tol = tol
        self.penalty = penalty

    def minimize(
        self,
        objective: Objective,
        x0: np.ndarray,
        bounds: Bounds,
        constraints: Sequence[Constraint] = (),
    ) -> OptimizationResult:
        options: dict = {"maxiter": self.max_iter}

        if self.method in _CONSTRAINED_METHODS:
            if self.method == "SLSQP":
                options["ftol"] = self.tol
            scipy_constraints = [{"type": "ineq", "fun": c} for c in constraints]
            fun = objective
        else:
            scipy_constraints = []
            penalty = self.penalty

            def fun(x: np.ndarray) -> float:
                if any(c(x) < 0 for c in constraints):
                    return penalty
                return objective(x)

        res = minimize(
            fun,
            np.asarray(x0, dtype=float),
            method=self.method,
            bounds=list(bounds),
            constraints=scipy_constraints,
            options=options,
        )

        logger.debug(
            "ScipyOptimizer.minimize: finished",
            method=self.method,
            success=bool(res.success),
            iterations=int(getattr(res, "nit", 0) or 0),
            fun=float(res.fun),
        )

        return OptimizationResult(
            x=np.asarray(res.x, dtype=float),
            fun=float(res.fun),
            success=bool(res.success),
            message=str(res.message),
            iterations=int(getattr(res, "nit", 0) or 0),
        )
