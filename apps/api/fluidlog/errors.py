"""
Fluidlog exception hierarchy.

Every error carries a short machine-readable ``code`` and a ``user_message``
that can be shown to a caregiver as-is. Raw exception text never goes to the
caregiver.
"""
from __future__ import annotations

from typing import List, Optional


class FluidLogError(Exception):
    """Base exception class for all fluidlog errors."""

    code = "E_INTERNAL"
    status_code = 500
    default_message = "Something went wrong. Please try again."

    def __init__(self, detail: str = "", *, user_message: Optional[str] = None) -> None:
        super().__init__(detail or self.default_message)
        self.detail = detail
        self.user_message = user_message or self.default_message

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.user_message}


class CompletionServiceError(FluidLogError):
    """Raised when the text-completion service cannot be reached or errors."""

    code = "E_PARSER_UNAVAILABLE"
    status_code = 502
    default_message = (
        "Sorry, I couldn't process that right now. "
        "Please try again in a moment or log it manually."
    )


class ActionValidationError(FluidLogError):
    """Raised when an action is rejected before anything is persisted."""

    code = "E_VALIDATION"
    status_code = 422
    default_message = "That entry is missing something it needs."


class DateValidationError(ActionValidationError):
    """Raised for an explicit date other than today or yesterday."""

    code = "E_DATE"
    default_message = "Entries can only be logged for today or yesterday."


class StoreUnavailableError(FluidLogError):
    """Raised when the event store cannot be used at all."""

    code = "E_STORE"
    status_code = 503
    default_message = "The log is unavailable right now. Nothing was saved; please try again."


class SummaryUnavailableError(StoreUnavailableError):
    """Raised when entries were written but the day's totals could not be read back."""

    code = "E_SUMMARY"
    default_message = (
        "Your entries were saved, but the day's totals couldn't be refreshed. "
        "Please don't log them again; reload to see the totals."
    )

    def __init__(
        self,
        detail: str = "",
        *,
        persisted: Optional[List[List[int]]] = None,
        user_message: Optional[str] = None,
    ) -> None:
        super().__init__(detail, user_message=user_message)
        self.persisted = persisted or []

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["persisted"] = self.persisted
        return detail
