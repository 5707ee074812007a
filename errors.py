"""
errors.py
Domain exceptions shown to the user by the dashboard pages.
"""

from __future__ import annotations


class CharityError(Exception):
    """Base class for faults the UI reports with st.error."""


class PermissionDenied(CharityError):
    """The acting user's role lacks the required capability."""


class RecordNotFound(CharityError):
    pass


class ValidationError(CharityError):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors
