import os
from pathlib import Path
from typing import Any

import pytest

from filecdn.bridge import Bridge
from filecdn.cdn import application
from filecdn.config import CDNConfig
from filecdn.utils import files, listing
from filecdn.utils.json import unjson

from conftest import README, VIDEO


def test_raw_file(cdn: Bridge) -> None:
	res = cdn.get("/files/docs/readme.txt")
	assert res.status == 200
	assert res.payload == README
	assert res.getHeader("Content-Type") == "text/plain"
	assert res.getHeader("Content-Length") == "13"
	assert res.getHeader("Access-Control-Allow-Origin") == "*"
	assert res.getHeader("Cache-Control") == "public, max-age=31536000, immutable"
	assert res.getHeader("X-Content-Type-Options") == "nosniff"


def test_raw_file_is_byte_exact(cdn: Bridge) -> None:
	res = cdn.get("/files/video.mp4")
	assert res.status == 200
	assert res.payload == VIDEO
	assert res.getHeader("Content-Type") == "video/mp4"
	assert res.getHeader("Content-Length") == "1000"


def test_raw_file_head(cdn: Bridge) -> None:
	res = cdn.head("/files/video.mp4")
	assert res.status == 200
	assert res.payload == b""
	assert res.getHeader("Content-Length") == "1000"
	assert res.getHeader("Content-Type") == "video/mp4"


def test_raw_file_encoded_name(root: Path, cdn: Bridge) -> None:
	(root / "my clip.webm").write_bytes(b"webm")
	res = cdn.get("/files/my%20clip.webm")
	assert res.status == 200
	assert res.payload == b"webm"
	assert res.getHeader("Content-Type") == "video/webm"


def test_unknown_type(root: Path, cdn: Bridge) -> None:
	(root / "blob").write_bytes(b"\x00\x01")
	res = cdn.get("/files/blob")
	assert res.getHeader("Content-Type") == "application/octet-stream"
	assert res.payload == b"\x00\x01"


@pytest.mark.parametrize("path", ["/files/docs", "/files", "/files/"])
def test_raw_directory(cdn: Bridge, path: str) -> None:
	res = cdn.get(path)
	assert res.status == 400
	assert unjson(res.payload) == {"error": "Path is not a file"}


def test_raw_missing(cdn: Bridge) -> None:
	res = cdn.get("/files/missing.txt")
	assert res.status == 404
	assert res.getHeader("Content-Type") == "application/json"
	assert unjson(res.payload) == {
		"error": "Not found",
		"message": "File or directory does not exist",
	}


@pytest.mark.parametrize(
	"path",
	[
		"/files/../secret.txt",
		"/files/../../etc/passwd",
		"/files/%2e%2e/%2e%2e/etc/passwd",
		"/files/docs/../../nonexistent",
		"/api/json/files/../",
		"/api/json/files/..%2f..%2f",
	],
)
def test_traversal(root: Path, cdn: Bridge, path: str) -> None:
	(root.parent / "secret.txt").write_text("secret")
	res = cdn.get(path)
	assert res.status == 403
	assert unjson(res.payload) == {
		"error": "Access denied",
		"message": "Path traversal detected",
	}


def test_traversal_through_symlink(root: Path, tmp_path: Path, cdn: Bridge) -> None:
	outside = tmp_path / "outside"
	outside.mkdir()
	(outside / "secret.txt").write_text("secret")
	(root / "escape").symlink_to(outside)
	assert cdn.get("/files/escape/secret.txt").status == 403
	assert cdn.get("/api/json/files/escape").status == 403


def test_metadata_root(cdn: Bridge) -> None:
	res = cdn.get("/api/json/files")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "application/json"
	assert res.getHeader("Access-Control-Allow-Origin") == "*"
	data = unjson(res.payload)
	assert isinstance(data, dict)
	assert data["name"] == "root"
	assert data["path"] == ""
	assert data["isDirectory"] is True
	assert [_["name"] for _ in data["files"]] == ["docs", "video.mp4"]
	assert data["files"][1]["url"] == "/files/video.mp4"
	assert data["files"][1]["size"] == 1000
	assert "size" not in data["files"][0]
	assert unjson(cdn.get("/api/json/files/").payload) == data


def test_metadata_directory(cdn: Bridge) -> None:
	data = unjson(cdn.get("/api/json/files/docs").payload)
	assert isinstance(data, dict)
	assert data["name"] == "docs"
	assert data["url"] == "/api/json/files/docs"
	assert [_["path"] for _ in data["files"]] == ["docs/readme.txt"]


def test_metadata_file(cdn: Bridge) -> None:
	res = cdn.get("/api/json/files/docs/readme.txt")
	assert res.status == 200
	data = unjson(res.payload)
	assert isinstance(data, dict)
	assert data["name"] == "readme.txt"
	assert data["path"] == "docs/readme.txt"
	assert data["url"] == "/files/docs/readme.txt"
	assert data["size"] == 13
	assert data["sizeFormatted"] == "13 B"
	assert data["category"] == "document"
	assert data["type"] == "text/plain"
	assert data["isDirectory"] is False
	assert data["lastModified"].endswith("Z")


def test_metadata_missing(cdn: Bridge) -> None:
	res = cdn.get("/api/json/files/nope")
	assert res.status == 404


def denied(path: Any, *args: Any, **kwargs: Any) -> Any:
	raise PermissionError(13, "Permission denied", str(path))


READ_FAILURE: dict[str, str] = {
	"error": "Internal server error",
	"message": "Error reading file or directory",
}


def test_read_failure(root: Path, cdn: Bridge, monkeypatch: pytest.MonkeyPatch) -> None:
	monkeypatch.setattr(files, "open", denied, raising=False)
	res = cdn.get("/files/docs/readme.txt")
	assert res.status == 500
	assert res.getHeader("Content-Type") == "application/json"
	assert unjson(res.payload) == READ_FAILURE
	assert str(root).encode() not in res.payload
	# `HEAD` is answered from `stat` alone
	assert cdn.head("/files/docs/readme.txt").status == 200


def test_listing_failure(root: Path, cdn: Bridge, monkeypatch: pytest.MonkeyPatch) -> None:
	monkeypatch.setattr(listing.os, "listdir", denied)
	res = cdn.get("/api/json/files/docs")
	assert res.status == 500
	assert unjson(res.payload) == READ_FAILURE
	assert str(root).encode() not in res.payload
	assert b"Permission denied" not in res.payload
	# Files can still be described
	assert cdn.get("/api/json/files/docs/readme.txt").status == 200


def test_undecodable_name(badName: str, root: Path) -> None:
	cdn = Bridge(application(CDNConfig(root=root))).start()
	page = cdn.get("/").payload.decode("utf8")
	assert 'href="/files/bad%FF.txt"' in page
	data = unjson(cdn.get("/api/json/files").payload)
	assert isinstance(data, dict)
	(entry,) = [_ for _ in data["files"] if _["url"] == "/files/bad%FF.txt"]
	assert entry["name"] == "bad\ufffd.txt"
	assert entry["size"] == 3
	res = cdn.get("/files/bad%FF.txt")
	assert res.status == 200
	assert res.payload == b"bad"
	assert cdn.get("/api/json/files/bad%FF.txt").status == 200


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="Needs named pipes")
def test_special_file(root: Path, cdn: Bridge) -> None:
	os.mkfifo(root / "pipe")
	res = cdn.get("/api/json/files/pipe")
	assert res.status == 400
	assert unjson(res.payload) == {"error": "Unsupported file type"}
	res = cdn.get("/files/pipe")
	assert res.status == 400
	assert unjson(res.payload) == {"error": "Path is not a file"}
	# Special files are left out of listings
	data = unjson(cdn.get("/api/json/files").payload)
	assert isinstance(data, dict)
	assert "pipe" not in [_["name"] for _ in data["files"]]


def test_metadata_public_url(root: Path) -> None:
	cdn = Bridge(
		application(CDNConfig(root=root, publicURL="https://cdn.example.com"))
	)
	data = unjson(cdn.get("/api/json/files").payload)
	assert isinstance(data, dict)
	assert data["files"][1]["url"] == "https://cdn.example.com/files/video.mp4"


def test_preflight(cdn: Bridge) -> None:
	res = cdn.request("OPTIONS", "/files/video.mp4", {"Origin": "https://example.com"})
	assert res.status == 200
	assert res.payload == b""
	assert res.getHeader("Access-Control-Allow-Origin") == "*"
	assert res.getHeader("Access-Control-Allow-Methods") == "GET, HEAD, OPTIONS"
	assert cdn.request("OPTIONS", "/api/json/files/docs").status == 200


def test_method_not_allowed(cdn: Bridge) -> None:
	res = cdn.request("POST", "/files/video.mp4")
	assert res.status == 405
	assert res.getHeader("Allow") == "GET, HEAD, OPTIONS"
	assert cdn.request("DELETE", "/api/json/files").status == 405


def test_no_route(cdn: Bridge) -> None:
	res = cdn.get("/nothing/here")
	assert res.status == 404
	data = unjson(res.payload)
	assert isinstance(data, dict)
	assert data["error"] == "Not found"


def test_index(cdn: Bridge) -> None:
	res = cdn.get("/")
	assert res.status == 200
	assert res.getHeader("Content-Type") == "text/html; charset=utf-8"
	page = res.payload.decode("utf8")
	assert page.startswith("<!DOCTYPE html>")
	assert 'href="/files/docs/readme.txt"' in page
	assert 'href="/files/video.mp4"' in page
	assert "1000 B" in page
	assert page.index("docs/readme.txt") < page.index("video.mp4")


def test_index_is_rendered_at_start(root: Path, cdn: Bridge) -> None:
	(root / "late.txt").write_text("late")
	page = cdn.get("/").payload.decode("utf8")
	assert "late.txt" not in page
	# New files are served right away
	assert cdn.get("/files/late.txt").payload == b"late"


def test_index_escapes_names(root: Path) -> None:
	(root / "<b>.txt").write_text("x")
	page = Bridge(application(CDNConfig(root=root))).get("/").payload.decode("utf8")
	assert "&lt;b&gt;.txt" in page
	assert "<b>.txt" not in page


def test_index_empty(tmp_path: Path) -> None:
	page = Bridge(application(CDNConfig(root=tmp_path))).get("/").payload
	assert b"No files yet" in page


def test_request_bytes(cdn: Bridge) -> None:
	responses = cdn.requestBytes(
		b"GET /files/docs/readme.txt HTTP/1.1\r\nHost: cdn\r\n\r\n"
		b"HEAD /files/video.mp4 HTTP/1.1\r\nHost: cdn\r\n\r\n"
	)
	assert [_.status for _ in responses] == [200, 200]
	assert responses[0].payload == README
	assert responses[1].payload == b""
	assert responses[1].getHeader("Content-Length") == "1000"


def test_request_bytes_malformed(cdn: Bridge) -> None:
	(res,) = cdn.requestBytes(b"GARBAGE\r\n\r\n")
	assert res.status == 400


# EOF
