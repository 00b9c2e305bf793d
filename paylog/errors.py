"""Mini README: Error taxonomy shared by the ledger, roster and web layers.

Structure:
    * PayLogError - base class carrying a short, user-presentable message.
    * ValidationError - malformed input; raised before any storage mutation.
    * InvalidAmountError / UnsupportedFileError / NoValidMembersError - common
      validation failures with fixed messages.
    * NotFoundError - referenced member or transaction is absent.
    * StorageError - the storage transaction failed and was rolled back.
    * AuthError - missing, expired or rejected admin credentials.

The web layer maps each class to an HTTP status through ``status_code``. The
message is what users see, so it never includes internal detail; the cause is
chained with ``raise ... from`` for the logs.
"""

from __future__ import annotations


class PayLogError(Exception):
    """Base class for every error surfaced to PayLog users."""

    status_code = 500
    default_message = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PayLogError, ValueError):
    """Input must be corrected by the user; nothing was mutated."""

    status_code = 400
    default_message = "Invalid request."


class InvalidAmountError(ValidationError):
    default_message = "Invalid amount."


class UnsupportedFileError(ValidationError):
    default_message = "Unsupported file type."


class NoValidMembersError(ValidationError):
    default_message = "No valid members found in file."


class NotFoundError(PayLogError, LookupError):
    """A member or transaction referenced by the request does not exist."""

    status_code = 404
    default_message = "Not found."


class StorageError(PayLogError):
    """The storage transaction failed; all of its changes were rolled back."""

    status_code = 500
    default_message = "Storage operation failed."


class AuthError(PayLogError):
    """The request is not authorised; callers should prompt for login."""

    status_code = 401
    default_message = "Not authorised."


__all__ = [
    "AuthError",
    "InvalidAmountError",
    "NoValidMembersError",
    "NotFoundError",
    "PayLogError",
    "StorageError",
    "UnsupportedFileError",
    "ValidationError",
]
