"""Run side effects whose failure must never fail the primary operation."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.orm import Session

from dealflow.core.errors import DependencyFailure

logger = logging.getLogger("dealflow.side_effects")

T = TypeVar("T")


def best_effort(
    label: str,
    fn: Callable[..., T],
    *args: Any,
    rollback: Optional[Session] = None,
    context: Optional[dict[str, Any]] = None,
    **kwargs: Any,
) -> Optional[T]:
    """Call ``fn``; on any error roll back ``rollback``, log ``<label>_failed`` and return None.

    The primary mutation must already be committed before calling this.
    """

    try:
        return fn(*args, **kwargs)
    except Exception as exc:
        if rollback is not None:
            rollback.rollback()
        failure = DependencyFailure(f"{label} failed", {"error": str(exc), **(context or {})})
        logger.exception(f"{label}_failed", extra={"error": str(failure), **(context or {})})
        return None
