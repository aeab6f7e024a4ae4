"""Tests for virtual paths, package specs and file identities."""
import pytest

from docresolve.identity import FileIdentity, PackageSpec, PackageVersion, VirtualPath


class TestVirtualPath:
    """Normalization of virtual paths."""

    def test_normalizes_to_rooted_form(self):
        """Relative, dotted and doubled-slash paths collapse to one rooted form."""
        assert str(VirtualPath("a/./b//c.typ")) == "/a/b/c.typ"
        assert str(VirtualPath("/a/b/../c.typ")) == "/a/c.typ"
        assert str(VirtualPath("a\\b.typ")) == "/a/b.typ"

    def test_equal_after_normalization(self):
        """Equivalent spellings compare and hash equal."""
        assert VirtualPath("x/../y.typ") == VirtualPath("/y.typ")
        assert hash(VirtualPath("x/../y.typ")) == hash(VirtualPath("/y.typ"))

    def test_escape_is_preserved(self):
        """A '..' above the root is kept so sandboxes can reject it."""
        path = VirtualPath("../../etc/passwd")
        assert path.escapes_root()
        assert path.parts == ("..", "..", "etc", "passwd")

    def test_inner_parent_does_not_escape(self):
        """Climbing back down inside the root is fine."""
        assert not VirtualPath("a/b/../../c").escapes_root()


class TestPackageSpec:
    """Parsing and validation of package specs."""

    def test_parse_import_notation(self):
        """@namespace/name:x.y.z parses into its parts."""
        spec = PackageSpec.parse("@preview/cetz:0.2.1")
        assert spec.namespace == "preview"
        assert spec.name == "cetz"
        assert spec.version == PackageVersion(0, 2, 1)
        assert str(spec) == "@preview/cetz:0.2.1"

    def test_version_string_is_coerced(self):
        """A string version given to the constructor is parsed."""
        assert PackageSpec("local", "mine", "1.0.0").version == PackageVersion(1, 0, 0)

    @pytest.mark.parametrize("text", ["preview/cetz:0.2.1", "@preview/cetz", "@preview/cetz:0.2", "@pre view/x:1.0.0"])
    def test_rejects_malformed(self, text):
        """Anything but @namespace/name:major.minor.patch is rejected."""
        with pytest.raises(ValueError):
            PackageSpec.parse(text)

    def test_rejects_prerelease(self):
        """Only exact versions are supported."""
        with pytest.raises(ValueError):
            PackageVersion.parse("1.0.0-rc.1")

    def test_version_tuple_is_coerced(self):
        """A (major, minor, patch) tuple becomes a PackageVersion."""
        spec = PackageSpec("preview", "example", (0, 1, 0))
        assert spec.version == PackageVersion(0, 1, 0)
        assert spec == PackageSpec.parse("@preview/example:0.1.0")
        assert str(spec) == "@preview/example:0.1.0"

    @pytest.mark.parametrize("version", [(0, 1), (0, 1, -1), ("0", "1", "0"), 1.0, None])
    def test_rejects_other_version_values(self, version):
        """Anything that is not a version string, triple or PackageVersion is rejected."""
        with pytest.raises(ValueError):
            PackageSpec("preview", "example", version)

    def test_equality_requires_all_fields(self):
        """Specs differing in any field are different keys."""
        a = PackageSpec.parse("@preview/a:1.0.0")
        assert a == PackageSpec.parse("@preview/a:1.0.0")
        assert a != PackageSpec.parse("@preview/a:1.0.1")
        assert a != PackageSpec.parse("@local/a:1.0.0")


class TestFileIdentity:
    """Identity construction and equality."""

    def test_coerce_from_string(self):
        """A plain path becomes a package-less identity."""
        identity = FileIdentity.coerce("main.typ")
        assert identity.package is None
        assert str(identity) == "/main.typ"

    def test_coerce_from_tuple(self):
        """A (spec, path) pair becomes a package identity."""
        spec = PackageSpec.parse("@preview/a:1.0.0")
        identity = FileIdentity.coerce((spec, "lib.typ"))
        assert identity == FileIdentity.new("/lib.typ", spec)
        assert str(identity) == "@preview/a:1.0.0/lib.typ"

    def test_package_and_path_both_matter(self):
        """Same path in different packages are different files."""
        spec = PackageSpec.parse("@preview/a:1.0.0")
        assert FileIdentity.new("lib.typ") != FileIdentity.new("lib.typ", spec)

    def test_identity_is_hashable_and_frozen(self):
        """Identities are usable as dict keys and cannot be mutated."""
        identity = FileIdentity.new("a.typ")
        assert {identity: 1}[FileIdentity.new("/a.typ")] == 1
        with pytest.raises(Exception):
            identity.package = None  # type: ignore[misc]

    def test_coerce_rejects_other_types(self):
        """Unsupported values raise TypeError."""
        with pytest.raises(TypeError):
            FileIdentity.coerce(42)
