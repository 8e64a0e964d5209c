"""Domain exceptions for Inbox View.

The API layer maps each ``kind`` to an HTTP status in its exception handlers.
"""

from typing import Any


class InboxViewError(Exception):
    """Base class for every error the mailbox core raises.

    Attributes:
        message: Human-readable error description.
        kind: Machine-readable error kind; defaults to the class name.
        details: Extra context (address, message id, ...).
    """

    def __init__(
        self,
        message: str,
        kind: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.kind = kind or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "kind": self.kind, "details": self.details}


class InvalidAddress(InboxViewError):
    """The target address is missing or not a syntactically valid email."""

    def __init__(self, address: str | None) -> None:
        message = "Target email is required" if not address else f"Invalid email address: {address}"
        super().__init__(message, details={"address": address or ""})


class SourceUnavailable(InboxViewError):
    """The mail provider or its transport failed; the whole fetch is discarded."""

    def __init__(self, message: str, provider: str | None = None, address: str | None = None) -> None:
        details: dict[str, Any] = {}
        if provider:
            details["provider"] = provider
        if address:
            details["address"] = address
        super().__init__(message, details=details)


class NormalizationError(InboxViewError):
    """A single raw message could not be turned into a Mail."""

    def __init__(self, message: str, message_id: str | None = None) -> None:
        details = {"message_id": message_id} if message_id else {}
        super().__init__(message, details=details)


class InvalidFilter(InboxViewError):
    """A filter value (category, timezone, ...) is not recognised."""

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"Invalid {field}: {value}", details={"field": field, "value": value})


class MailNotFound(InboxViewError):
    """No mail with the given id exists in the mailbox."""

    def __init__(self, mail_id: str) -> None:
        super().__init__(f"Mail {mail_id} not found", details={"id": mail_id})


class MailboxNotFound(InboxViewError):
    """No mailbox is open for the given address."""

    def __init__(self, address: str) -> None:
        super().__init__(f"No open mailbox for {address}", details={"address": address})
