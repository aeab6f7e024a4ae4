"""Boundary between the resolvers and an external document compiler.

A ``CompileSession`` owns a resolver chain for its whole lifetime and can be
compiled many times with different inputs. Files never change between
compiles; the compiler's own memoized results may, so the session asks the
compiler to evict them after every compile unless told otherwise.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union

from .common.logging_utils import Timer, extra_context
from .constants import Constants
from .identity import FileIdentity, IdentityLike
from .resolved import Binary, Source
from .resolvers.base import FileResolver
from .resolvers.bundled import BundledPackageResolver
from .resolvers.chain import ResolverChain
from .resolvers.filesystem import FileSystemResolver
from .resolvers.package import PackageResolver
from .resolvers.static import BinaryEntry, MainSourceResolver, SourceEntry, StaticResolver

logger = logging.getLogger(__name__)

DEFAULT_MAIN_PATH = "/main.typ"


class MainFileError(ValueError):
    """compile() was called without a main file."""


@dataclass(frozen=True)
class InjectLocation:
    """Where compile inputs appear in the compiler's global scope."""

    module_name: str = Constants.INJECT_MODULE
    value_name: str = Constants.INJECT_VALUE


class World:
    """What the compiler sees during one compile: main file, inputs, file access."""

    def __init__(
        self,
        main: FileIdentity,
        resolver: FileResolver,
        inputs: Optional[Mapping[str, Any]] = None,
        inject_location: InjectLocation = InjectLocation(),
    ):
        self.main = main
        self._resolver = resolver
        self.inputs: Dict[str, Any] = dict(inputs or {})
        self.inject_location = inject_location

    def source(self, identity: IdentityLike) -> Source:
        return self._resolver.resolve_source(identity)

    def file(self, identity: IdentityLike) -> Binary:
        return self._resolver.resolve_binary(identity)

    def injected_scope(self) -> Dict[str, Dict[str, Any]]:
        """Inputs nested under their inject location, e.g. {"sys": {"inputs": {...}}}."""
        loc = self.inject_location
        return {loc.module_name: {loc.value_name: dict(self.inputs)}}


class Compiler(Protocol):
    """The external engine driven by a session."""

    def compile(self, world: World) -> Any:
        """Compile ``world.main``; any result type is passed through."""
        ...

    def evict(self, max_age: int) -> None:
        """Drop memoized results not used in the last ``max_age`` compiles."""
        ...


class CompileSession:
    """Reusable compile entry point owning a resolver chain."""

    def __init__(
        self,
        compiler: Compiler,
        chain: ResolverChain,
        *,
        main: Optional[IdentityLike] = None,
        evict_max_age: Optional[int] = Constants.EVICT_MAX_AGE,
        inject_location: InjectLocation = InjectLocation(),
    ):
        """Initialize the session.

        Args:
            compiler: Engine to drive.
            chain: Resolvers answering the compiler's file requests.
            main: Default main file for compile() calls.
            evict_max_age: Passed to compiler.evict() after each compile; None disables eviction.
            inject_location: Where inputs are exposed to the compiler.
        """
        self.compiler = compiler
        self.chain = chain
        self.main = FileIdentity.coerce(main) if main is not None else None
        self.evict_max_age = evict_max_age
        self.inject_location = inject_location
        self.compile_count = 0

    @staticmethod
    def builder() -> "SessionBuilder":
        return SessionBuilder()

    def compile(self, main: Optional[IdentityLike] = None, inputs: Optional[Mapping[str, Any]] = None) -> Any:
        """Compile ``main`` (or the session default) with ``inputs``.

        Raises:
            MainFileError: no main file given and none configured.
        """
        main_id = FileIdentity.coerce(main) if main is not None else self.main
        if main_id is None:
            raise MainFileError("No main file: pass one to compile() or configure it on the session")

        world = World(main_id, self.chain, inputs, self.inject_location)
        try:
            with Timer() as t:
                result = self.compiler.compile(world)
        finally:
            self.compile_count += 1
            self.evict()
        logger.debug(
            "Compiled %s",
            main_id,
            extra=extra_context(
                event="compile",
                component="session",
                outcome="success",
                duration_ms=t.duration_ms(),
            ),
        )
        return result

    def evict(self) -> None:
        """Ask the compiler to drop stale memoized results, if enabled."""
        if self.evict_max_age is None:
            return
        self.compiler.evict(self.evict_max_age)


class SessionBuilder:
    """Collects resolvers and options, then builds a ``CompileSession``."""

    def __init__(self):
        self._main_resolver: Optional[MainSourceResolver] = None
        self._main: Optional[FileIdentity] = None
        self._resolvers: List[FileResolver] = []
        self._evict_max_age: Optional[int] = Constants.EVICT_MAX_AGE
        self._inject_location = InjectLocation()

    def main_file(self, text: str, path: str = DEFAULT_MAIN_PATH) -> "SessionBuilder":
        """Use ``text`` as the main template, served at ``path``."""
        self._main_resolver = MainSourceResolver(path, text)
        self._main = self._main_resolver.identity
        return self

    def main_identity(self, identity: IdentityLike) -> "SessionBuilder":
        """Use a file served by the registered resolvers as the main template."""
        self._main_resolver = None
        self._main = FileIdentity.coerce(identity)
        return self

    def add_resolver(self, resolver: FileResolver) -> "SessionBuilder":
        self._resolvers.append(resolver)
        return self

    def with_static_source_resolver(self, sources: Iterable[SourceEntry]) -> "SessionBuilder":
        return self.add_resolver(StaticResolver.from_sources(sources))

    def with_static_file_resolver(self, binaries: Iterable[BinaryEntry]) -> "SessionBuilder":
        return self.add_resolver(StaticResolver.from_binaries(binaries))

    def with_file_system_resolver(self, root: Union[str, Path]) -> "SessionBuilder":
        return self.add_resolver(FileSystemResolver(root).into_cached())

    def with_package_resolver(self, cache_dir: Optional[Union[str, Path]] = None) -> "SessionBuilder":
        resolver = PackageResolver.builder().with_file_system_cache(cache_dir).build()
        return self.add_resolver(resolver.into_cached())

    def with_bundled_packages(self, directory: Union[str, Path]) -> "SessionBuilder":
        return self.add_resolver(BundledPackageResolver(directory))

    def evict_max_age(self, max_age: Optional[int]) -> "SessionBuilder":
        """Memoization age passed to the compiler after each compile; None disables."""
        self._evict_max_age = max_age
        return self

    def custom_inject_location(self, module_name: str, value_name: str) -> "SessionBuilder":
        self._inject_location = InjectLocation(module_name, value_name)
        return self

    def build_chain(self) -> ResolverChain:
        resolvers: List[FileResolver] = []
        if self._main_resolver is not None:
            resolvers.append(self._main_resolver)
        resolvers.extend(self._resolvers)
        return ResolverChain(resolvers)

    def build(self, compiler: Compiler) -> CompileSession:
        return CompileSession(
            compiler,
            self.build_chain(),
            main=self._main,
            evict_max_age=self._evict_max_age,
            inject_location=self._inject_location,
        )
