"""Request signing for the cluster API."""

from __future__ import annotations

from collections.abc import Generator

import httpx


class TokenAuth(httpx.Auth):
    """Attach the service token to every request.

    With the defaults this sends ``Authorization: Bearer <token>``. An empty
    scheme sends the bare token in the configured header.
    """

    def __init__(self, token: str, *, header: str = "Authorization", scheme: str = "Bearer") -> None:
        self.token = token
        self.header = header
        self.scheme = scheme

    @property
    def value(self) -> str:
        if self.scheme:
            return f"{self.scheme} {self.token}"
        return self.token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers[self.header] = self.value
        yield request

    def __repr__(self) -> str:
        return f"TokenAuth(header={self.header!r}, scheme={self.scheme!r})"
