"""docresolve - virtual file resolution and caching for document compilers.

Resolvers answer "give me this file" from preloaded content, a local
directory tree or a remote package registry; cache decorators avoid repeated
disk and network access; a compile session hands the composed chain to an
external compiler.
"""

from .constants import CacheMode, Constants, FileKind
from .errors import (
    ConfigError,
    DecodeError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    ResolveError,
    ResolverIOError,
)
from .identity import FileIdentity, PackageSpec, PackageVersion, VirtualPath
from .resolved import Binary, Resolved, Source
from .resolvers import (
    BundledPackageResolver,
    FileResolver,
    FileSystemResolver,
    MainSourceResolver,
    PackageResolver,
    ResolverChain,
    StaticResolver,
)
from .cache import FileSystemCache, InMemoryCache, InMemoryPackageCache
from .session import CompileSession, InjectLocation, MainFileError, World

__version__ = "0.3.0"

__all__ = [
    "CacheMode",
    "Constants",
    "FileKind",
    "ConfigError",
    "DecodeError",
    "ForbiddenError",
    "NetworkError",
    "NotFoundError",
    "ResolveError",
    "ResolverIOError",
    "FileIdentity",
    "PackageSpec",
    "PackageVersion",
    "VirtualPath",
    "Binary",
    "Resolved",
    "Source",
    "BundledPackageResolver",
    "FileResolver",
    "FileSystemResolver",
    "MainSourceResolver",
    "PackageResolver",
    "ResolverChain",
    "StaticResolver",
    "FileSystemCache",
    "InMemoryCache",
    "InMemoryPackageCache",
    "CompileSession",
    "InjectLocation",
    "MainFileError",
    "World",
]
