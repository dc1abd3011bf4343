"""Errors raised by the authentication adapter.

Lookups that find nothing return ``None``; only the two preconditions below
are reported as exceptions. Database errors (duplicate keys, broken foreign
keys) reach the caller as the driver raised them.
"""


class AdapterError(Exception):
    """Base class for adapter failures."""


class MissingUserIdError(AdapterError, ValueError):
    """An update was requested for a user without an id."""

    def __init__(self, message: str = "No user id."):
        super().__init__(message)


class VerificationTokenNotFoundError(AdapterError, LookupError):
    """A verification token could not be consumed.

    Raised both when no matching row exists (including a token that was
    already used) and when the lookup or delete fails. The underlying cause
    is chained but not part of the message.
    """

    def __init__(self, message: str = "No verification token found."):
        super().__init__(message)
