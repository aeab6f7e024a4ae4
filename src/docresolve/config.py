"""Resolver configuration: dataclass defaults, YAML files and environment overrides.

Precedence, lowest to highest: ``Constants`` defaults, YAML file, environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from .cache.package_store import FileSystemCache, InMemoryPackageCache, PackageStore
from .constants import CacheMode, Constants
from .errors import ConfigError
from .resolvers.base import FileResolver
from .resolvers.bundled import BundledPackageResolver
from .resolvers.chain import ResolverChain
from .resolvers.filesystem import FileSystemResolver
from .resolvers.package import PackageResolver

logger = logging.getLogger(__name__)


@dataclass
class ResolverConfig:
    """Describes the resolver chain to build."""

    root: Optional[Path] = None
    local_package_root: Optional[Path] = None
    package_cache_dir: Optional[Path] = None
    bundle_dir: Optional[Path] = None
    packages_enabled: bool = True
    registry_url: str = Constants.REGISTRY_URL
    namespaces: Tuple[str, ...] = Constants.REGISTRY_NAMESPACES
    retry_max: int = Constants.HTTP_RETRY_MAX
    timeout: float = Constants.REQUEST_TIMEOUT
    cache_mode: CacheMode = CacheMode.FILESYSTEM
    in_memory: bool = True
    evict_max_age: Optional[int] = Constants.EVICT_MAX_AGE
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ConfigError on values that cannot work."""
        if self.retry_max < 1:
            raise ConfigError(f"retry_max must be at least 1, got {self.retry_max}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        if self.evict_max_age is not None and self.evict_max_age < 0:
            raise ConfigError(f"evict_max_age must be >= 0 or null, got {self.evict_max_age}")
        if not isinstance(self.registry_url, str) or not self.registry_url.startswith(("http://", "https://")):
            raise ConfigError(f"registry_url must be an http(s) URL, got {self.registry_url!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ResolverConfig":
        """Create config from a plain mapping (e.g. parsed YAML).

        Unknown keys are kept in ``extra`` and logged.
        """
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                extra[key] = value
                continue
            kwargs[key] = value
        if extra:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(extra)))

        try:
            for key in ("root", "local_package_root", "package_cache_dir", "bundle_dir"):
                if kwargs.get(key) is not None:
                    kwargs[key] = Path(os.path.expanduser(str(kwargs[key])))
            if "cache_mode" in kwargs:
                kwargs["cache_mode"] = CacheMode(str(kwargs["cache_mode"]).lower())
            if "namespaces" in kwargs:
                value = kwargs["namespaces"]
                kwargs["namespaces"] = (value,) if isinstance(value, str) else tuple(value)
            if "retry_max" in kwargs:
                kwargs["retry_max"] = int(kwargs["retry_max"])
            if "timeout" in kwargs:
                kwargs["timeout"] = float(kwargs["timeout"])
            if kwargs.get("evict_max_age") is not None:
                kwargs["evict_max_age"] = int(kwargs["evict_max_age"])
            for key in ("packages_enabled", "in_memory"):
                if key in kwargs:
                    kwargs[key] = _as_bool(kwargs[key], key)
        except (TypeError, ValueError) as exc:
            if isinstance(exc, ConfigError):
                raise
            raise ConfigError(f"Invalid configuration value: {exc}") from exc
        return cls(extra=extra, **kwargs)


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def load_config(config_path: Union[str, Path, None]) -> ResolverConfig:
    """Load configuration from a YAML file.

    A top-level ``docresolve:`` section is used when present, otherwise the
    whole document. A missing path yields the defaults.

    Raises:
        ConfigError: unreadable file, invalid YAML or invalid values.
    """
    if not config_path:
        return ResolverConfig()
    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return ResolverConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Could not read {config_path}: {exc}") from exc

    if data is None:
        return ResolverConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    section = data.get(Constants.CONFIG_SECTION, data)
    if not isinstance(section, dict):
        raise ConfigError(f"'{Constants.CONFIG_SECTION}' in {config_path} must be a mapping")
    return ResolverConfig.from_mapping(section)


def apply_env_overrides(config: ResolverConfig, environ: Optional[Mapping[str, str]] = None) -> ResolverConfig:
    """Apply DOCRESOLVE_* environment variables on top of config (in place)."""
    env = os.environ if environ is None else environ

    if env.get(Constants.ENV_ROOT):
        config.root = Path(env[Constants.ENV_ROOT])
    if env.get(Constants.ENV_PACKAGE_CACHE):
        config.package_cache_dir = Path(env[Constants.ENV_PACKAGE_CACHE])
    if env.get(Constants.ENV_LOCAL_PACKAGES):
        config.local_package_root = Path(env[Constants.ENV_LOCAL_PACKAGES])
    if env.get(Constants.ENV_REGISTRY_URL):
        config.registry_url = env[Constants.ENV_REGISTRY_URL]
    if env.get(Constants.ENV_RETRY_MAX):
        try:
            config.retry_max = int(env[Constants.ENV_RETRY_MAX])
        except ValueError as exc:
            raise ConfigError(f"{Constants.ENV_RETRY_MAX} must be an integer") from exc
    config.validate()
    return config


def build_package_store(config: ResolverConfig) -> PackageStore:
    if config.cache_mode is CacheMode.MEMORY:
        return InMemoryPackageCache()
    return FileSystemCache(config.package_cache_dir)


def build_chain(config: ResolverConfig) -> ResolverChain:
    """Build the chain described by config: bundle, local files, registry."""
    resolvers = []
    if config.bundle_dir is not None:
        resolvers.append(BundledPackageResolver(config.bundle_dir))
    if config.root is not None:
        fs: FileResolver = FileSystemResolver(config.root, config.local_package_root)
        resolvers.append(fs.into_cached() if config.in_memory else fs)
    if config.packages_enabled:
        package = PackageResolver(
            build_package_store(config),
            registry_url=config.registry_url,
            namespaces=config.namespaces,
            request_retry_count=config.retry_max,
            timeout=config.timeout,
        )
        resolvers.append(package.into_cached() if config.in_memory else package)
    logger.debug("Built resolver chain: %s", resolvers)
    return ResolverChain(resolvers)
