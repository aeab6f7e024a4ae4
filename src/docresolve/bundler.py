"""Bundle the packages a template tree imports into a directory.

The resulting directory uses the package layout
``<namespace>/<name>/<version>/...`` and can be served offline with
``BundledPackageResolver``. Dependencies are followed transitively through
each package's manifest and its own imports.
"""
from __future__ import annotations

import logging
import re
from collections import deque
from pathlib import Path
from typing import Deque, Iterable, List, Optional, Set, Tuple, Union

from .cache.package_store import FileSystemCache
from .constants import Constants
from .errors import ResolveError
from .identity import PackageSpec, PackageVersion
from .resolvers.package import PackageResolver

logger = logging.getLogger(__name__)

_IMPORT_RE = re.compile(r'#(?:import|include)\s+"(@[^"\s]+)"')


class BundleError(Exception):
    """One or more packages could not be bundled."""

    def __init__(self, failures: List[Tuple[PackageSpec, str]]):
        self.failures = failures
        listing = "\n  - ".join(f"{spec}: {reason}" for spec, reason in failures)
        super().__init__(f"Failed to bundle {len(failures)} package(s):\n  - {listing}")


def find_package_imports(text: str) -> List[PackageSpec]:
    """Package specifiers used in #import / #include string literals.

    Malformed specifiers are ignored.
    """
    specs: List[PackageSpec] = []
    for match in _IMPORT_RE.finditer(text):
        try:
            spec = PackageSpec.parse(match.group(1))
        except ValueError:
            logger.debug("Ignoring malformed package import %s", match.group(1))
            continue
        if spec not in specs:
            specs.append(spec)
    return specs


def scan_directory(directory: Union[str, Path]) -> List[PackageSpec]:
    """All package imports found in the template files below directory."""
    found: List[PackageSpec] = []
    for path in sorted(Path(directory).rglob(f"*{Constants.TEMPLATE_SUFFIX}")):
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            continue
        for spec in find_package_imports(text):
            if spec not in found:
                found.append(spec)
    return found


def manifest_dependencies(package_dir: Path) -> List[PackageSpec]:
    """Dependencies declared in the package manifest's [package.dependencies].

    Entries look like ``name = "namespace:1.2.3"``.
    """
    manifest = package_dir / Constants.PACKAGE_MANIFEST_FILE
    if not manifest.is_file():
        return []
    try:
        try:
            import tomllib as toml  # type: ignore
        except Exception:  # pylint: disable=broad-exception-caught
            import tomli as toml  # type: ignore

        with open(manifest, "rb") as f:
            data = toml.load(f) or {}
    except (OSError, ValueError) as exc:
        logger.warning("Could not parse %s: %s", manifest, exc)
        return []

    deps = (data.get("package") or {}).get("dependencies") or {}
    specs: List[PackageSpec] = []
    if not isinstance(deps, dict):
        return specs
    for name, value in deps.items():
        if not isinstance(value, str) or ":" not in value:
            continue
        namespace, version = value.split(":", 1)
        try:
            specs.append(PackageSpec(namespace, name, PackageVersion.parse(version)))
        except ValueError:
            logger.debug("Ignoring malformed dependency %s = %s", name, value)
    return specs


def bundle_packages(
    specs: Iterable[PackageSpec],
    dest: Union[str, Path],
    resolver: Optional[PackageResolver] = None,
) -> List[PackageSpec]:
    """Materialize specs and their dependencies under dest.

    Args:
        specs: Packages to start from.
        dest: Bundle directory.
        resolver: Supplies session and registry settings; it is not modified.

    Returns:
        Every package present in the bundle, in processing order.

    Raises:
        BundleError: listing every package that failed.
    """
    store = FileSystemCache(dest)
    store.root.mkdir(parents=True, exist_ok=True)
    resolver = PackageResolver(store) if resolver is None else resolver.with_store(store)

    queue: Deque[PackageSpec] = deque(specs)
    seen: Set[PackageSpec] = set()
    bundled: List[PackageSpec] = []
    failures: List[Tuple[PackageSpec, str]] = []

    while queue:
        spec = queue.popleft()
        if spec in seen:
            continue
        seen.add(spec)

        if store.contains(spec):
            logger.info("Cached: %s", spec)
        else:
            try:
                resolver.materialize(spec)
            except ResolveError as exc:
                logger.error("Failed to bundle %s: %s", spec, exc.message)
                failures.append((spec, exc.message))
                continue
            logger.info("Bundled: %s", spec)
        bundled.append(spec)

        package_dir = store.package_dir(spec)
        queue.extend(manifest_dependencies(package_dir))
        queue.extend(scan_directory(package_dir))

    if failures:
        raise BundleError(failures)
    return bundled


def bundle_directory(
    template_dir: Union[str, Path],
    dest: Union[str, Path],
    resolver: Optional[PackageResolver] = None,
) -> List[PackageSpec]:
    """Scan template_dir for package imports and bundle them into dest."""
    specs = scan_directory(template_dir)
    if not specs:
        logger.info("No packages found in %s", template_dir)
        Path(dest).mkdir(parents=True, exist_ok=True)
        return []
    return bundle_packages(specs, dest, resolver)
