# src/taskdeck/storage/http_storage.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import InvalidKeyError, StorageError, StorageNotFound
from ..core.ports import StoredContent
from .workspace import check_key

logger = logging.getLogger(__name__)

INVALID_PATH_ERROR = "Invalid path"


def _make_timeout(total_s: float) -> httpx.Timeout:
    connect_s = min(5.0, total_s)
    return httpx.Timeout(connect=connect_s, read=total_s, write=total_s, pool=connect_s)


class HttpWorkspaceStorage:
    """
    Workspace storage served by the dashboard's workspace endpoint.

    GET    {url}?path=<key>&file=1   -> {"content": str, "mtime": float}
    PUT    {url}  {"path", "content"} -> {"ok": true, "mtime": float}
    DELETE {url}?path=<key>           -> {"ok": true}

    Keys are checked locally before any request goes out; the server checks
    them again against its own root.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = base_url
        self._client = client or httpx.Client(timeout=_make_timeout(timeout_seconds))
        self._owns_client = client is None
        logger.info("HttpWorkspaceStorage ready url=%s", self._url)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _request(self, method: str, key: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = self._client.request(method, self._url, **kwargs)
        except httpx.HTTPError as e:
            raise StorageError(key, f"{method} failed: {e}") from e

        # The route answers 400 for a bad path and for a malformed body alike.
        if resp.status_code == 400 and _error_text(resp) == INVALID_PATH_ERROR:
            raise InvalidKeyError(key)
        if resp.status_code == 404:
            raise StorageNotFound(key)
        if resp.is_error:
            raise StorageError(key, f"{method} returned HTTP {resp.status_code}: {_error_text(resp)}")

        try:
            body = resp.json()
        except ValueError as e:
            raise StorageError(key, f"{method} returned a non-JSON body") from e
        if not isinstance(body, dict):
            raise StorageError(key, f"{method} returned an unexpected body")
        return body

    def read(self, key: str) -> StoredContent:
        key = check_key(key)
        body = self._request("GET", key, params={"path": key, "file": "1"})
        content = body.get("content")
        return StoredContent(
            content=content if isinstance(content, str) else "",
            last_modified=_as_float(body.get("mtime")),
        )

    def write(self, key: str, content: str) -> float:
        key = check_key(key)
        body = self._request("PUT", key, json={"path": key, "content": content})
        logger.debug("PUT %s (%d chars)", key, len(content))
        return _as_float(body.get("mtime"))

    def delete(self, key: str) -> None:
        key = check_key(key)
        self._request("DELETE", key, params={"path": key})


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _error_text(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return resp.text[:200]
