"""Caching layers: per-file memory cache and whole-package stores."""

from .memory import InMemoryCache
from .package_store import FileSystemCache, InMemoryPackageCache, PackageStore
from .archive import extract_tar_gz, read_tar_gz_members

__all__ = [
    "InMemoryCache",
    "FileSystemCache",
    "InMemoryPackageCache",
    "PackageStore",
    "extract_tar_gz",
    "read_tar_gz_members",
]
