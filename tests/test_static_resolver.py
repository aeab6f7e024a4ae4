"""Tests for preloaded-content resolvers."""
import pytest

from docresolve.constants import FileKind
from docresolve.errors import NotFoundError
from docresolve.identity import FileIdentity, PackageSpec
from docresolve.resolved import Binary, Source
from docresolve.resolvers.base import FileResolver
from docresolve.resolvers.static import MainSourceResolver, StaticResolver


class TestStaticResolver:
    """StaticResolver lookups."""

    def test_serves_preloaded_source(self):
        """A registered source comes back as-is."""
        resolver = StaticResolver.from_sources([("/a.typ", "A")])
        assert resolver.resolve_source("/a.typ") == Source("A")

    def test_repeated_lookups_are_identical(self):
        """Lookups are idempotent and return the same stored value."""
        resolver = StaticResolver.from_binaries([("img.png", b"\x89PNG")])
        first = resolver.resolve_binary("img.png")
        second = resolver.resolve_binary("/img.png")
        assert first == second == Binary(b"\x89PNG")
        assert first is second

    def test_missing_is_not_found(self):
        """Unknown identities raise NotFoundError naming the resolver."""
        resolver = StaticResolver.from_sources([("/a.typ", "A")])
        with pytest.raises(NotFoundError) as excinfo:
            resolver.resolve_source("/b.typ")
        assert excinfo.value.resolver == "StaticResolver"

    def test_kind_must_match(self):
        """Sources are not served as binaries and vice versa."""
        sources = StaticResolver.from_sources([("/a.typ", "A")])
        binaries = StaticResolver.from_binaries([("/a.typ", b"A")])
        with pytest.raises(NotFoundError):
            sources.resolve_binary("/a.typ")
        with pytest.raises(NotFoundError):
            binaries.resolve_source("/a.typ")

    def test_package_identities(self):
        """Entries may be keyed by package identities."""
        spec = PackageSpec.parse("@local/tpl:1.0.0")
        resolver = StaticResolver.from_sources([((spec, "lib.typ"), "#let x = 1")])
        assert resolver.resolve_source(FileIdentity.new("lib.typ", spec)).text == "#let x = 1"
        with pytest.raises(NotFoundError):
            resolver.resolve_source("lib.typ")

    def test_mapping_is_copied(self):
        """Mutating the source dict after construction changes nothing."""
        entries = {FileIdentity.new("a.typ"): Source("A")}
        resolver = StaticResolver(entries)
        entries[FileIdentity.new("b.typ")] = Source("B")
        assert len(resolver) == 1
        assert "b.typ" not in resolver


class TestMainSourceResolver:
    """MainSourceResolver serves exactly one source."""

    def test_serves_main_only(self):
        """Only the main identity as SOURCE is served."""
        resolver = MainSourceResolver("/main.typ", "Hello")
        assert resolver.resolve(FileIdentity.new("main.typ"), FileKind.SOURCE) == Source("Hello")
        with pytest.raises(NotFoundError):
            resolver.resolve(FileIdentity.new("main.typ"), FileKind.BINARY)
        with pytest.raises(NotFoundError):
            resolver.resolve(FileIdentity.new("other.typ"), FileKind.SOURCE)


class WrongKindResolver(FileResolver):
    """Always answers with bytes, whatever was asked for."""

    def resolve(self, identity, kind=FileKind.BINARY):
        return Binary(b"bytes")


class TestResolveKindCheck:
    """resolve_source/resolve_binary verify what the resolver returned."""

    def test_wrong_kind_is_type_error(self):
        """A resolver answering SOURCE with a Binary is reported, not passed on."""
        with pytest.raises(TypeError) as excinfo:
            WrongKindResolver().resolve_source("/a.typ")
        assert "WrongKindResolver" in str(excinfo.value)

    def test_matching_kind_passes(self):
        """The matching kind is returned unchanged."""
        assert WrongKindResolver().resolve_binary("/a.png") == Binary(b"bytes")
