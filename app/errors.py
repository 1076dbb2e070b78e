# app/errors.py
from __future__ import annotations

from typing import Optional


class ApiError(Exception):
    """Network or HTTP failure talking to the coordination API.

    ``status_code`` is None when the request never got a response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidInput(ValueError):
    """Missing field or bad date range, caught before anything is sent."""


class ConflictError(Exception):
    """Hard scheduling block (the equipment is in movement)."""

    def __init__(self, message: str, conflicts: Optional[list] = None):
        super().__init__(message)
        self.message = message
        self.conflicts = conflicts or []


class NotFound(LookupError):
    """Record id unknown to the cached fleet or request list."""
