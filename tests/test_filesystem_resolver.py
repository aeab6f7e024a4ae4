"""Tests for the sandboxed filesystem resolver."""
import os

import pytest

from docresolve.errors import DecodeError, ForbiddenError, NotFoundError
from docresolve.identity import FileIdentity, PackageSpec
from docresolve.resolved import Binary, Source
from docresolve.resolvers.filesystem import FileSystemResolver


@pytest.fixture
def root(tmp_path):
    base = tmp_path / "root"
    (base / "parts").mkdir(parents=True)
    (base / "main.typ").write_text("= Title\n", encoding="utf-8")
    (base / "parts" / "a.typ").write_text("part a", encoding="utf-8")
    (base / "logo.png").write_bytes(b"\x89PNG\r\n")
    (tmp_path / "secret.txt").write_text("top secret", encoding="utf-8")
    return base


class TestFileSystemResolverReads:
    """Reading files below the root."""

    def test_reads_source_and_binary(self, root):
        """Files are served as text or bytes as requested."""
        resolver = FileSystemResolver(root)
        assert resolver.resolve_source("/main.typ") == Source("= Title\n")
        assert resolver.resolve_source("parts/a.typ") == Source("part a")
        assert resolver.resolve_binary("/logo.png") == Binary(b"\x89PNG\r\n")

    def test_strips_bom(self, root):
        """A leading UTF-8 BOM is not part of the text."""
        (root / "bom.typ").write_bytes(b"\xef\xbb\xbfhello")
        assert FileSystemResolver(root).resolve_source("bom.typ").text == "hello"

    def test_invalid_utf8_is_decode_error(self, root):
        """Invalid UTF-8 as SOURCE is a decode error; as BINARY it is fine."""
        (root / "bad.typ").write_bytes(b"\xff\xfe\x00bad")
        resolver = FileSystemResolver(root)
        with pytest.raises(DecodeError) as excinfo:
            resolver.resolve_source("bad.typ")
        assert excinfo.value.resolver == "FileSystemResolver"
        assert resolver.resolve_binary("bad.typ").data == b"\xff\xfe\x00bad"

    def test_missing_file_is_not_found(self, root):
        """Missing files raise NotFoundError."""
        with pytest.raises(NotFoundError):
            FileSystemResolver(root).resolve_source("nope.typ")

    def test_file_below_a_file_is_not_found(self, root):
        """A path through a regular file is treated as missing."""
        with pytest.raises(NotFoundError):
            FileSystemResolver(root).resolve_source("main.typ/inner.typ")

    def test_reads_are_not_cached(self, root):
        """Every call goes to disk."""
        resolver = FileSystemResolver(root)
        assert resolver.resolve_source("parts/a.typ").text == "part a"
        (root / "parts" / "a.typ").write_text("changed", encoding="utf-8")
        assert resolver.resolve_source("parts/a.typ").text == "changed"


class TestFileSystemResolverSandbox:
    """Paths that leave the root are refused."""

    def test_parent_traversal_is_forbidden(self, root):
        """'../secret.txt' never reads the file outside the root."""
        with pytest.raises(ForbiddenError):
            FileSystemResolver(root).resolve_source("../secret.txt")

    def test_deep_traversal_is_forbidden(self, root):
        """Traversal through a subdirectory is refused too."""
        with pytest.raises(ForbiddenError):
            FileSystemResolver(root).resolve_binary("parts/../../secret.txt")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_escape_is_forbidden(self, root, tmp_path):
        """A link inside the root pointing outside it is refused."""
        os.symlink(tmp_path / "secret.txt", root / "link.txt")
        with pytest.raises(ForbiddenError):
            FileSystemResolver(root).resolve_source("link.txt")


class TestFileSystemResolverPackages:
    """Package identities resolve against the local package root."""

    def test_local_package_root(self, root, tmp_path):
        """Package files come from <local>/<ns>/<name>/<version>/."""
        local = tmp_path / "packages"
        pkg_dir = local / "local" / "tpl" / "1.0.0"
        pkg_dir.mkdir(parents=True)
        (pkg_dir / "lib.typ").write_text("#let x = 1", encoding="utf-8")
        spec = PackageSpec.parse("@local/tpl:1.0.0")

        resolver = FileSystemResolver(root).local_package_root(local)

        assert resolver.resolve_source(FileIdentity.new("lib.typ", spec)).text == "#let x = 1"
        with pytest.raises(NotFoundError):
            resolver.resolve_source(FileIdentity.new("lib.typ", PackageSpec.parse("@local/tpl:2.0.0")))

    def test_local_package_root_returns_copy(self, root, tmp_path):
        """The source resolver keeps its configuration."""
        base = FileSystemResolver(root)
        changed = base.local_package_root(tmp_path)
        assert changed is not base
        assert changed.package_root == tmp_path
        assert base.package_root != tmp_path
