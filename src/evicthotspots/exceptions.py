# -*- coding: utf-8 -*-
"""
Exceptions for evicthotspots
=============================
Error taxonomy for the hotspot pipeline. Every error is fatal to the call
that raised it; non-fatal diagnostics travel as plain strings on the
result objects instead.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


__all__ = [
    "HotspotError",
    "ValidationError",
    "InvalidInputError",
    "InsufficientDataError",
    "InvalidParameterError",
    "InvalidGeometryError",
]


class HotspotError(Exception):
    """
    Base exception for evicthotspots errors.

    Args:
        message: Primary error message.
        suggestion: Optional hint for fixing the error.
        details: Optional extra context (offending values, positions, …).
    """

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class ValidationError(HotspotError, ValueError):
    """Malformed or missing input: wrong object type, missing or non-numeric column."""


class InvalidInputError(HotspotError, ValueError):
    """Statistic inputs that do not fit together (non-numeric values, length mismatch)."""


class InsufficientDataError(HotspotError, ValueError):
    """Fewer features than a neighbour graph needs."""


class InvalidParameterError(HotspotError, ValueError):
    """A malformed tuning parameter such as ``k``."""


class InvalidGeometryError(HotspotError, ValueError):
    """Missing, empty or unsupported geometry."""
