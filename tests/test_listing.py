import locale
import os
import re
from pathlib import Path
from typing import Iterator

import pytest

from filecdn.utils.files import TypeClassifier, fstat
from filecdn.utils.listing import DirectoryLister, useSystemCollation
from filecdn.utils.paths import PathResolver

RE_TIMESTAMP = re.compile(r"^\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z$")


def test_list_root(lister: DirectoryLister) -> None:
	entries = lister.list(lister.resolver.root)
	assert [_.name for _ in entries] == ["docs", "video.mp4"]
	docs, video = entries
	assert docs.asPrimitive() == {
		"name": "docs",
		"path": "docs",
		"url": "/api/json/files/docs",
		"type": "directory",
		"isDirectory": True,
		"lastModified": docs.lastModified,
	}
	assert video.asPrimitive() == {
		"name": "video.mp4",
		"path": "video.mp4",
		"url": "/files/video.mp4",
		"size": 1000,
		"sizeFormatted": "1000 B",
		"category": "video",
		"type": "video/mp4",
		"isDirectory": False,
		"lastModified": video.lastModified,
	}
	assert RE_TIMESTAMP.match(video.lastModified)


def test_list_subdirectory(lister: DirectoryLister) -> None:
	(entry,) = lister.list(lister.resolver.resolvePath("docs"))
	assert entry.path == "docs/readme.txt"
	assert entry.url == "/files/docs/readme.txt"
	assert entry.size == 13
	assert entry.category == "document"


def test_last_modified(root: Path, lister: DirectoryLister) -> None:
	os.utime(root / "video.mp4", (0, 1_700_000_000))
	stat = fstat(root / "video.mp4")
	assert lister.entry("video.mp4", stat).lastModified == "2023-11-14T22:13:20.000Z"


def test_root_entry(lister: DirectoryLister) -> None:
	entry = lister.entry("", fstat(lister.resolver.root))
	assert entry.name == "root"
	assert entry.path == ""
	assert entry.isDirectory


def test_sort_order(root: Path) -> None:
	for name in ("b.txt", "A.txt", "a.txt"):
		(root / name).write_text(name)
	(root / "Zdir").mkdir()
	lister = DirectoryLister(PathResolver(root), TypeClassifier())
	names = [_.name for _ in lister.list(lister.resolver.root)]
	assert names == ["docs", "Zdir", "A.txt", "a.txt", "b.txt", "video.mp4"]
	# Listings are stable across calls
	assert names == [_.name for _ in lister.list(lister.resolver.root)]


def test_urls_are_encoded(root: Path) -> None:
	(root / "my file é.txt").write_text("x")
	lister = DirectoryLister(
		PathResolver(root), TypeClassifier(), baseURL="https://cdn.example.com/"
	)
	urls = {_.name: _.url for _ in lister.list(lister.resolver.root)}
	assert urls["my file é.txt"] == "https://cdn.example.com/files/my%20file%20%C3%A9.txt"
	assert urls["docs"] == "https://cdn.example.com/api/json/files/docs"


def test_skips_escaping_and_dangling_links(root: Path, tmp_path: Path) -> None:
	outside = tmp_path / "outside"
	outside.mkdir()
	(outside / "secret.txt").write_text("secret")
	(root / "escape").symlink_to(outside)
	(root / "leak.txt").symlink_to(outside / "secret.txt")
	(root / "dangling.txt").symlink_to(root / "nothing.txt")
	lister = DirectoryLister(PathResolver(root), TypeClassifier())
	assert [_.name for _ in lister.list(lister.resolver.root)] == ["docs", "video.mp4"]


def test_walk(lister: DirectoryLister) -> None:
	assert [_.path for _ in lister.walk()] == ["docs/readme.txt", "video.mp4"]
	assert all(not _.isDirectory for _ in lister.walk())


def test_walk_depth(root: Path, lister: DirectoryLister) -> None:
	deep = root / "a" / "b" / "c"
	deep.mkdir(parents=True)
	(deep / "deep.txt").write_text("deep")
	assert [_.path for _ in lister.walk(depth=0)] == ["video.mp4"]
	assert "a/b/c/deep.txt" not in [_.path for _ in lister.walk(depth=2)]
	assert "a/b/c/deep.txt" in [_.path for _ in lister.walk(depth=3)]


def test_walk_symlink_cycle(root: Path) -> None:
	(root / "docs" / "loop").symlink_to(root)
	lister = DirectoryLister(PathResolver(root), TypeClassifier())
	assert [_.path for _ in lister.walk()] == ["docs/readme.txt", "video.mp4"]


def test_walk_empty(tmp_path: Path) -> None:
	lister = DirectoryLister(PathResolver(tmp_path), TypeClassifier())
	assert list(lister.walk()) == []


def test_undecodable_name(root: Path, badName: str, lister: DirectoryLister) -> None:
	entries = {_.name: _ for _ in lister.list(lister.resolver.root)}
	entry = entries["bad\ufffd.txt"]
	assert entry.path == "bad\ufffd.txt"
	assert entry.url == "/files/bad%FF.txt"
	assert entry.type == "text/plain"
	# The URL resolves back to the file
	assert lister.resolver.resolvePath("bad%FF.txt") == lister.resolver.root / badName
	assert "bad\ufffd.txt" in [_.path for _ in lister.walk()]


@pytest.fixture
def collation() -> Iterator[None]:
	saved = locale.setlocale(locale.LC_COLLATE)
	yield
	locale.setlocale(locale.LC_COLLATE, saved)


def test_locale_collation(
	root: Path, lister: DirectoryLister, monkeypatch: pytest.MonkeyPatch, collation: None
) -> None:
	for name in ("en_US.UTF-8", "en_US.utf8", "fr_FR.UTF-8", "de_DE.UTF-8"):
		monkeypatch.setenv("LC_ALL", name)
		if useSystemCollation():
			break
	else:
		pytest.skip("No locale with accent-aware collation is installed")
	for name in ("zeta.txt", "été.txt", "f.txt"):
		(root / name).write_text(name)
	names = [_.name for _ in lister.list(lister.resolver.root)]
	assert names == ["docs", "été.txt", "f.txt", "video.mp4", "zeta.txt"]


def test_unknown_locale(monkeypatch: pytest.MonkeyPatch, collation: None) -> None:
	monkeypatch.setenv("LC_ALL", "xx_XX.NOPE")
	assert useSystemCollation() is False


# EOF
