"""Constants used in the project."""

from enum import Enum


class FileKind(Enum):
    """How the compiler wants a file delivered.

    Args:
        Enum (string): Requested representation of a resolved file.
    """

    SOURCE = "source"
    BINARY = "binary"


class CacheMode(Enum):
    """Storage strategies for downloaded packages.

    Args:
        Enum (string): Package store selected for the package resolver.
    """

    FILESYSTEM = "filesystem"
    MEMORY = "memory"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL = "https://packages.typst.org"
    REGISTRY_NAMESPACES = ("preview",)
    DEFAULT_PACKAGES_SUBDIR = "typst/packages"
    PACKAGE_MANIFEST_FILE = "typst.toml"
    TEMPLATE_SUFFIX = ".typ"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    USER_AGENT = "docresolve/0.3"

    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_RETRY_MAX_DELAY_SEC = 5.0
    HTTP_RETRYABLE_STATUS = (429,)

    # Memoization eviction after each compile (0 = evict everything unused)
    EVICT_MAX_AGE = 0
    INJECT_MODULE = "sys"
    INJECT_VALUE = "inputs"

    ENV_LOG_LEVEL = "DOCRESOLVE_LOG_LEVEL"
    ENV_ROOT = "DOCRESOLVE_ROOT"
    ENV_PACKAGE_CACHE = "DOCRESOLVE_PACKAGE_CACHE"
    ENV_LOCAL_PACKAGES = "DOCRESOLVE_LOCAL_PACKAGES"
    ENV_REGISTRY_URL = "DOCRESOLVE_REGISTRY_URL"
    ENV_RETRY_MAX = "DOCRESOLVE_RETRY_MAX"
    CONFIG_SECTION = "docresolve"
