"""ApiClient — the HTTP side of the provider."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .auth import TokenAuth
from .errors import ApiError, DecodeError
from .models import ApiKeyGrant, ApiKeyListing, ApiKeyRecord

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 180.0


def _segment(value: str) -> str:
    """Escape a value for use as a single URL path segment.

    Dot segments are percent-encoded so URL normalization cannot remove them.
    """
    if value in (".", ".."):
        return value.replace(".", "%2E")
    return quote(value, safe="")


class ApiClient:
    """Configured connection to the cluster API for a single org.

    Every method issues exactly one request. Transport errors from httpx
    propagate unchanged.

    In strict mode (the default) malformed payloads raise DecodeError. In
    lenient mode they decode to an empty key or an empty listing.
    """

    def __init__(
        self,
        address: str,
        org: str,
        token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        strict: bool = True,
        auth: httpx.Auth | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._address = address.rstrip("/")
        self._org = org
        self._strict = strict
        self._http = httpx.Client(
            base_url=self._address,
            timeout=timeout,
            auth=auth if auth is not None else TokenAuth(token),
            transport=transport,
        )

    @property
    def address(self) -> str:
        return self._address

    @property
    def org(self) -> str:
        return self._org

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def timeout(self) -> httpx.Timeout:
        return self._http.timeout

    def _cluster_path(self, name: str, *parts: str) -> str:
        return "/".join(["/api/cluster", _segment(self._org), _segment(name), *parts])

    def _keys_path(self) -> str:
        return f"/api/cluster/{_segment(self._org)}/apikeys/cluster"

    def _request(self, method: str, path: str) -> httpx.Response:
        logger.debug("%s %s", method, path)
        response = self._http.request(method, path)
        logger.debug("%s %s -> %d", method, path, response.status_code)
        return response

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            if self._strict:
                raise DecodeError(f"malformed JSON from {response.request.url}: {exc}") from exc
            logger.warning("Ignoring malformed JSON from %s", response.request.url)
            return None

    def _check(self, response: httpx.Response) -> None:
        if response.status_code >= 400:
            raise ApiError(response.status_code, response.text)

    def _grant(self, response: httpx.Response) -> str:
        self._check(response)
        payload = self._json(response)
        try:
            return ApiKeyGrant.model_validate(payload).api_key
        except ValidationError as exc:
            if self._strict:
                raise DecodeError(f"missing apiKey in response from {response.request.url}") from exc
            logger.warning("No apiKey in response from %s", response.request.url)
            return ""

    def generate_key(self, name: str) -> str:
        """Register a cluster and return its newly generated API key."""
        response = self._request("POST", self._cluster_path(name, "apikeys", "generate"))
        return self._grant(response)

    def rotate_key(self, name: str) -> str:
        """Replace the API key of a cluster and return the new key."""
        response = self._request("POST", self._cluster_path(name, "apikeys", "rotate"))
        return self._grant(response)

    def list_keys(self) -> list[ApiKeyRecord]:
        """Return the API key records of every cluster in the org."""
        response = self._request("GET", self._keys_path())
        self._check(response)
        payload = self._json(response)
        if payload is None and not self._strict:
            return []
        try:
            return ApiKeyListing.validate_python(payload)
        except ValidationError as exc:
            if self._strict:
                raise DecodeError(f"unexpected key listing from {response.request.url}") from exc
            logger.warning("Ignoring unexpected key listing from %s", response.request.url)
            return []

    def find_key(self, name: str) -> ApiKeyRecord | None:
        """Return the record for the named cluster, if the service has one."""
        for record in self.list_keys():
            if record.name == name:
                return record
        return None

    def delete_keys(self, name: str) -> None:
        """Revoke every key of a cluster.

        Anything other than 200 raises ApiError carrying the response body.
        """
        response = self._request("DELETE", self._cluster_path(name, "apikeys"))
        if response.status_code != 200:
            raise ApiError(response.status_code, response.text)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ApiClient(address={self._address!r}, org={self._org!r}, strict={self._strict})"
