import os
from pathlib import Path

import pytest

from filecdn.bridge import Bridge
from filecdn.cdn import application
from filecdn.config import CDNConfig
from filecdn.utils import logging
from filecdn.utils.files import TypeClassifier
from filecdn.utils.listing import DirectoryLister
from filecdn.utils.paths import PathResolver

README: bytes = b"Hello, world!"
VIDEO: bytes = bytes(range(256)) * 3 + bytes(232)


@pytest.fixture(autouse=True)
def quiet() -> None:
	logging.configure("error")


@pytest.fixture
def root(tmp_path: Path) -> Path:
	"""A root holding `docs/readme.txt` (13 bytes) and `video.mp4`
	(1000 bytes)."""
	files = tmp_path / "files"
	(files / "docs").mkdir(parents=True)
	(files / "docs" / "readme.txt").write_bytes(README)
	(files / "video.mp4").write_bytes(VIDEO)
	return files


@pytest.fixture
def resolver(root: Path) -> PathResolver:
	return PathResolver(root)


@pytest.fixture
def lister(resolver: PathResolver) -> DirectoryLister:
	return DirectoryLister(resolver, TypeClassifier())


@pytest.fixture
def badName(root: Path) -> str:
	"""Creates a file whose name holds the byte `0xFF`, which is not valid
	UTF-8, and returns its name as `os` decodes it."""
	name = os.fsdecode(b"bad\xff.txt")
	try:
		(root / name).write_bytes(b"bad")
	except (OSError, UnicodeError):
		pytest.skip("File system rejects names that are not valid UTF-8")
	return name


@pytest.fixture
def cdn(root: Path) -> Bridge:
	return Bridge(application(CDNConfig(root=root))).start()


# EOF
