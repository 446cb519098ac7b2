# tests/test_storage.py

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from taskdeck.core.errors import InvalidKeyError, StorageError, StorageNotFound
from taskdeck.storage.http_storage import HttpWorkspaceStorage
from taskdeck.storage.workspace import FileWorkspaceStorage, check_key

API_URL = "http://dashboard.test/api/workspace"


# ---- key validation ----


@pytest.mark.parametrize(
    ("key", "normalized"),
    [
        ("Dashboard/TASKS.md", "Dashboard/TASKS.md"),
        ("Dashboard//goals.json", "Dashboard/goals.json"),
        ("Dashboard/./x/../calendar.json", "Dashboard/calendar.json"),
    ],
)
def test_check_key_normalizes(key: str, normalized: str) -> None:
    assert check_key(key) == normalized


@pytest.mark.parametrize("key", ["", "   ", "..", "../outside.md", "a/../../b", "/abs/path", "nul\0byte"])
def test_check_key_rejects(key: str) -> None:
    with pytest.raises(InvalidKeyError):
        check_key(key)


# ---- filesystem backend ----


def test_file_storage_write_then_read(tmp_path: Path) -> None:
    fs = FileWorkspaceStorage(tmp_path)
    mtime = fs.write("Dashboard/TASKS.md", "# Tasks\n")

    stored = fs.read("Dashboard/TASKS.md")
    assert stored.content == "# Tasks\n"
    assert stored.last_modified == mtime > 0
    assert (tmp_path / "Dashboard" / "TASKS.md").exists()
    assert not (tmp_path / "Dashboard" / "TASKS.md.tmp").exists()


def test_file_storage_missing_and_delete(tmp_path: Path) -> None:
    fs = FileWorkspaceStorage(tmp_path)
    with pytest.raises(StorageNotFound):
        fs.read("nope.json")

    fs.write("x.json", "{}")
    fs.delete("x.json")
    with pytest.raises(StorageNotFound):
        fs.delete("x.json")


def test_file_storage_refuses_escape_before_io(tmp_path: Path) -> None:
    root = tmp_path / "ws"
    root.mkdir()
    fs = FileWorkspaceStorage(root)

    with pytest.raises(InvalidKeyError):
        fs.write("../escaped.md", "x")
    assert not (tmp_path / "escaped.md").exists()


def test_file_storage_refuses_symlink_escape(tmp_path: Path) -> None:
    root = tmp_path / "ws"
    outside = tmp_path / "outside"
    root.mkdir()
    outside.mkdir()
    (root / "link").symlink_to(outside, target_is_directory=True)
    fs = FileWorkspaceStorage(root)

    with pytest.raises(InvalidKeyError):
        fs.write("link/secret.md", "x")


def test_file_storage_directory_delete_is_error(tmp_path: Path) -> None:
    (tmp_path / "Dashboard").mkdir()
    with pytest.raises(StorageError):
        FileWorkspaceStorage(tmp_path).delete("Dashboard")


# ---- HTTP backend ----


class FakeWorkspaceApi:
    """Mimics the dashboard's /api/workspace route on top of a dict."""

    def __init__(self) -> None:
        self.files: dict[str, str] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            path = request.url.params.get("path", "")
            if path not in self.files:
                return httpx.Response(404, json={"error": "Not found"})
            return httpx.Response(200, json={"content": self.files[path], "mtime": 1234.0})
        if request.method == "PUT":
            body = json.loads(request.content)
            if body["path"].startswith("forbidden/"):
                return httpx.Response(400, json={"error": "Invalid path"})
            self.files[body["path"]] = body["content"]
            return httpx.Response(200, json={"ok": True, "mtime": 5678.0})
        if request.method == "DELETE":
            path = request.url.params.get("path", "")
            if self.files.pop(path, None) is None:
                return httpx.Response(404, json={"error": "Not found"})
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(405)


@pytest.fixture()
def api() -> FakeWorkspaceApi:
    return FakeWorkspaceApi()


@pytest.fixture()
def http_storage(api: FakeWorkspaceApi) -> HttpWorkspaceStorage:
    client = httpx.Client(transport=httpx.MockTransport(api))
    return HttpWorkspaceStorage(API_URL, client=client)


def test_http_storage_round_trip(api: FakeWorkspaceApi, http_storage: HttpWorkspaceStorage) -> None:
    assert http_storage.write("Dashboard/goals.json", '{"goals": []}') == 5678.0

    stored = http_storage.read("Dashboard/goals.json")
    assert stored.content == '{"goals": []}'
    assert stored.last_modified == 1234.0

    get = api.requests[-1]
    assert get.url.params["path"] == "Dashboard/goals.json"
    assert get.url.params["file"] == "1"


def test_http_storage_status_mapping(api: FakeWorkspaceApi, http_storage: HttpWorkspaceStorage) -> None:
    with pytest.raises(StorageNotFound):
        http_storage.read("missing.md")
    with pytest.raises(InvalidKeyError):
        http_storage.write("forbidden/x.md", "x")
    with pytest.raises(StorageNotFound):
        http_storage.delete("missing.md")


def test_http_bad_request_other_than_path_is_a_storage_error() -> None:
    def rejects_body(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Invalid JSON body"})

    storage = HttpWorkspaceStorage(API_URL, client=httpx.Client(transport=httpx.MockTransport(rejects_body)))
    with pytest.raises(StorageError) as exc:
        storage.write("Dashboard/TASKS.md", "x")

    assert not isinstance(exc.value, InvalidKeyError)
    assert "Invalid JSON body" in str(exc.value)


def test_http_storage_checks_key_before_request(api: FakeWorkspaceApi, http_storage: HttpWorkspaceStorage) -> None:
    with pytest.raises(InvalidKeyError):
        http_storage.write("../../etc/passwd", "x")
    assert api.requests == []


def test_http_storage_server_and_transport_errors() -> None:
    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "Internal error"})

    def offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    def not_json(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy page</html>")

    for handler, fragment in [(broken, "Internal error"), (offline, "connection refused"), (not_json, "non-JSON")]:
        storage = HttpWorkspaceStorage(API_URL, client=httpx.Client(transport=httpx.MockTransport(handler)))
        with pytest.raises(StorageError) as exc:
            storage.read("Dashboard/TASKS.md")
        assert fragment in str(exc.value)
