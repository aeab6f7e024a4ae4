"""File resolvers: the origins a compiler can read files from."""

from .base import FileResolver
from .static import MainSourceResolver, StaticResolver
from .filesystem import FileSystemResolver
from .chain import ResolverChain
from .bundled import BundledPackageResolver
from .package import PackageResolver, PackageResolverBuilder, package_url

__all__ = [
    "FileResolver",
    "MainSourceResolver",
    "StaticResolver",
    "FileSystemResolver",
    "ResolverChain",
    "BundledPackageResolver",
    "PackageResolver",
    "PackageResolverBuilder",
    "package_url",
]
