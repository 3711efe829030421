import os
from pathlib import Path

import pytest

from filecdn.utils.files import AccessDenied
from filecdn.utils.paths import PathResolver


def test_root_is_canonical(root: Path, resolver: PathResolver) -> None:
	assert resolver.root == Path(os.path.realpath(root))
	assert resolver.resolve() == resolver.root
	assert resolver.resolvePath("") == resolver.root
	assert resolver.resolvePath("/") == resolver.root


def test_resolves_within_root(resolver: PathResolver) -> None:
	expected = resolver.root / "docs" / "readme.txt"
	assert resolver.resolve(["docs", "readme.txt"]) == expected
	assert resolver.resolvePath("docs/readme.txt") == expected
	assert resolver.resolvePath("/docs//readme.txt") == expected
	assert resolver.resolvePath("docs/../docs/./readme.txt") == expected


def test_missing_paths_still_resolve(resolver: PathResolver) -> None:
	assert resolver.resolvePath("missing.txt") == resolver.root / "missing.txt"


@pytest.mark.parametrize(
	"path",
	[
		"..",
		"../files",
		"../../etc/passwd",
		"docs/../../secret.txt",
		"%2e%2e/%2e%2e/etc/passwd",
		"..%2f..%2fetc%2fpasswd",
		"/etc/passwd/../../..",
	],
)
def test_traversal_is_denied(resolver: PathResolver, path: str) -> None:
	with pytest.raises(AccessDenied):
		resolver.resolvePath(path)


def test_sibling_with_common_prefix_is_denied(root: Path) -> None:
	# `files-private` starts with the text of `files`
	sibling = root.parent / f"{root.name}-private"
	sibling.mkdir()
	resolver = PathResolver(root)
	with pytest.raises(AccessDenied):
		resolver.resolvePath(f"../{sibling.name}")


def test_nul_bytes_are_denied(resolver: PathResolver) -> None:
	with pytest.raises(AccessDenied):
		resolver.resolvePath("docs/readme.txt%00.png")


def test_symlink_escaping_root_is_denied(root: Path, tmp_path: Path) -> None:
	outside = tmp_path / "outside"
	outside.mkdir()
	(outside / "secret.txt").write_text("secret")
	(root / "escape").symlink_to(outside)
	resolver = PathResolver(root)
	with pytest.raises(AccessDenied):
		resolver.resolvePath("escape/secret.txt")
	with pytest.raises(AccessDenied):
		resolver.resolvePath("escape")


def test_symlink_within_root_is_followed(root: Path) -> None:
	(root / "latest.mp4").symlink_to(root / "video.mp4")
	resolver = PathResolver(root)
	assert resolver.resolvePath("latest.mp4") == resolver.root / "video.mp4"


def test_relative(resolver: PathResolver) -> None:
	assert resolver.relative(resolver.root) == ""
	assert resolver.relative(resolver.root / "docs") == "docs"
	assert resolver.relative(resolver.root / "docs" / "readme.txt") == "docs/readme.txt"


def test_segments_are_decoded() -> None:
	assert PathResolver.Segments("/a%20b//c/") == ["a b", "c"]
	assert PathResolver.Segments("") == []


# EOF
