"""Errors raised while talking to the cluster API."""

from __future__ import annotations


class GreenOpsError(Exception):
    """Base class for provider errors."""


class ApiError(GreenOpsError):
    """The service answered with an unexpected status.

    The message is the raw response body, exactly as the service sent it.
    """

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(body)
        self.status_code = status_code
        self.body = body


class DecodeError(GreenOpsError):
    """A response payload could not be decoded."""
