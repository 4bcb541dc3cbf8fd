"""
Manifest loader - discovers, reads and merges component manifests.

Sources, in merge order:
- the local project manifest (explicit ``manifestSrc`` or a conventional
  location under the project root)
- manifests declared per library in the configuration (path or URL)
- manifests shipped by packages listed in ``package.json`` dependencies

Every source is read in isolation: a missing, unreadable or malformed
source is recorded in the load report and skipped, never aborting the
load of its siblings.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING
from urllib.parse import unquote, urlparse

import httpx

from ..faults import (
    Fault,
    ManifestParseFault,
    NetworkFault,
    Severity,
    SourceFault,
    SourceNotFoundFault,
)
from .core import Registry, RegistryBuilder
from .errors import ErrorSpan, LoadReport
from .indexer import ManifestIndexer

if TYPE_CHECKING:
    from ..config import ProjectConfig

logger = logging.getLogger("wclens.registry.loader")


MANIFEST_FILE_NAME = "custom-elements.json"

# Conventional local locations, relative to the project root.
CONVENTIONAL_LOCATIONS = [
    MANIFEST_FILE_NAME,
    f"dist/{MANIFEST_FILE_NAME}",
    f"src/{MANIFEST_FILE_NAME}",
    f"build/{MANIFEST_FILE_NAME}",
]

# Fallbacks inside a dependency's package root when its package.json has
# no ``customElements`` field.
DEPENDENCY_FALLBACKS = [
    MANIFEST_FILE_NAME,
    f"dist/{MANIFEST_FILE_NAME}",
]

DEFAULT_TIMEOUT = 10.0

_URL_PATTERN = re.compile(r"^(https?://|www\.|ftp://|file://)", re.IGNORECASE)


def is_url(value: str) -> bool:
    return bool(_URL_PATTERN.match(value.strip()))


@dataclass(frozen=True)
class ManifestSource:
    """
    Manifest source descriptor.

    ``kind`` is one of ``local``, ``dependency`` or ``remote``. ``package``
    is the owning-package label used to scope per-package configuration;
    it is None for the local project.
    """

    kind: str
    location: str
    package: Optional[str] = None

    @property
    def id(self) -> str:
        return f"{self.package}:{self.location}" if self.package else self.location

    @property
    def is_remote(self) -> bool:
        return self.kind == "remote"

    @property
    def uri(self) -> str:
        """Document URI of the manifest, for navigation."""
        if self.is_remote:
            return self.location
        return Path(self.location).resolve().as_uri()

    def __repr__(self) -> str:
        return f"ManifestSource({self.kind}, {self.id})"


@dataclass
class LoadedManifest:
    """A parsed manifest together with its raw text."""

    source: ManifestSource
    data: Dict[str, Any]
    text: str


class ManifestLoader:
    """
    Loads every manifest of a project and builds a Registry.

    A loader holds no registry state of its own; each call to ``load_all``
    produces a brand-new Registry.
    """

    def __init__(
        self,
        config: "ProjectConfig",
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.config = config
        self.root = Path(config.root)
        self.timeout = timeout
        self._client = http_client

    # ── Discovery ────────────────────────────────────────────────────

    def _source_for(self, location: str, package: Optional[str], kind: str) -> ManifestSource:
        location = location.strip()
        if location.lower().startswith("file://"):
            path = Path(unquote(urlparse(location).path))
            return ManifestSource(kind=kind, location=str(path), package=package)
        if is_url(location):
            if location.lower().startswith("www."):
                location = f"https://{location}"
            return ManifestSource(kind="remote", location=location, package=package)
        path = Path(location)
        if not path.is_absolute():
            path = self.root / path
        return ManifestSource(kind=kind, location=str(path), package=package)

    def discover(self) -> Optional[ManifestSource]:
        """
        Resolve the local project manifest.

        The configured ``manifestSrc`` wins; otherwise the conventional
        locations are tried in order. Absence is not an error.

        Returns:
            ManifestSource, or None when the project has no manifest
        """
        if self.config.manifest_src:
            source = self._source_for(self.config.manifest_src, None, "local")
            if source.is_remote or Path(source.location).exists():
                return source
            logger.warning(
                f"Configured manifestSrc '{self.config.manifest_src}' does not exist, "
                f"falling back to conventional locations"
            )

        for relative in CONVENTIONAL_LOCATIONS:
            candidate = self.root / relative
            if candidate.is_file():
                logger.debug(f"Found local manifest: {candidate}")
                return ManifestSource(kind="local", location=str(candidate))

        logger.debug(f"No local manifest under {self.root}")
        return None

    def discover_libraries(self) -> List[ManifestSource]:
        """Sources declared through ``libraries[name].manifestSrc``, in config order."""
        sources = []
        for name, library in self.config.libraries.items():
            if library.manifest_src:
                sources.append(self._source_for(library.manifest_src, name, "dependency"))
        return sources

    def dependency_names(self, report: Optional[LoadReport] = None) -> List[str]:
        """Dependency names from the project's package.json, in declaration order."""
        package_json = self.root / "package.json"
        if not package_json.is_file():
            return []
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            fault = ManifestParseFault(str(package_json), str(exc))
            if report is not None:
                report.record(fault, source_id=str(package_json), logger=logger)
            else:
                logger.warning(str(fault))
            return []

        dependencies = data.get("dependencies") if isinstance(data, dict) else None
        if not isinstance(dependencies, dict):
            return []
        return list(dependencies)

    def discover_dependencies(
        self,
        report: Optional[LoadReport] = None,
        *,
        skip: Iterable[str] = (),
    ) -> List[ManifestSource]:
        """
        Locate the manifest of every declared dependency.

        A dependency's own package.json ``customElements`` field is
        honored first, then the conventional fallbacks. Dependencies
        without a manifest are skipped silently.

        Args:
            report: Load report receiving SOURCE_NOT_FOUND entries
            skip: Package names already provided by another source

        Returns:
            Sources in dependency declaration order
        """
        skipped = set(skip)
        sources = []
        for name in self.dependency_names(report):
            if name in skipped:
                logger.debug(f"Dependency {name} already provided by library config")
                continue
            manifest = self._dependency_manifest(name)
            if manifest is None:
                fault = SourceNotFoundFault(f"node_modules/{name}")
                if report is not None:
                    report.record(fault, source_id=name, logger=logger)
                continue
            sources.append(ManifestSource(kind="dependency", location=str(manifest), package=name))
        return sources

    def _dependency_manifest(self, name: str) -> Optional[Path]:
        package_root = self.root / "node_modules" / name
        if not package_root.is_dir():
            return None

        package_json = package_root / "package.json"
        if package_json.is_file():
            try:
                data = json.loads(package_json.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                data = None
            declared = data.get("customElements") if isinstance(data, dict) else None
            if isinstance(declared, str) and declared:
                candidate = package_root / declared
                if candidate.is_file():
                    return candidate

        for relative in DEPENDENCY_FALLBACKS:
            candidate = package_root / relative
            if candidate.is_file():
                return candidate
        return None

    # ── Reading ──────────────────────────────────────────────────────

    async def load(self, source: ManifestSource) -> LoadedManifest:
        """
        Read and parse one source.

        Raises:
            SourceNotFoundFault: If a file source does not exist
            ManifestParseFault: If the content is not a manifest document
            NetworkFault: If a remote fetch fails
        """
        if source.is_remote:
            return await self.load_remote(source.location, source.package)

        path = Path(source.location)
        if not path.is_file():
            raise SourceNotFoundFault(source.location)

        loop = asyncio.get_running_loop()
        try:
            text = await loop.run_in_executor(None, lambda: path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            raise ManifestParseFault(source.location, f"unreadable: {exc}") from exc

        return LoadedManifest(source=source, data=self._parse(text, source.location), text=text)

    async def load_remote(self, url: str, label: Optional[str] = None) -> LoadedManifest:
        """
        Fetch a manifest over HTTP(S).

        Args:
            url: Manifest URL
            label: Owning-package label for the source

        Raises:
            NetworkFault: On transport errors, timeouts or non-2xx responses
            ManifestParseFault: If the body is not a manifest document
        """
        source = ManifestSource(kind="remote", location=url, package=label)
        if not url.lower().startswith(("http://", "https://")):
            raise NetworkFault(url, "unsupported URL scheme")

        client = self._client
        owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={"User-Agent": "wclens/1.0", "Accept": "application/json"},
            )

        try:
            response = await client.get(url, follow_redirects=True)
            response.raise_for_status()
            text = response.text
        except httpx.TimeoutException as exc:
            raise NetworkFault(url, f"timed out after {self.timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise NetworkFault(url, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise NetworkFault(url, str(exc) or exc.__class__.__name__) from exc
        finally:
            if owns_client:
                await client.aclose()

        logger.debug(f"Fetched {len(text)} bytes from {url}")
        return LoadedManifest(source=source, data=self._parse(text, url), text=text)

    def _parse(self, text: str, origin: str) -> Dict[str, Any]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ManifestParseFault(
                origin,
                exc.msg,
                metadata={"line": exc.lineno, "column": exc.colno},
            ) from exc
        if not isinstance(data, dict):
            raise ManifestParseFault(origin, "top-level value is not an object")
        return data

    async def _read_isolated(self, source: ManifestSource, report: LoadReport) -> Optional[LoadedManifest]:
        """Read one source, recording any failure instead of raising."""
        try:
            return await self.load(source)
        except Fault as fault:
            span = None
            if "line" in fault.metadata:
                span = ErrorSpan(
                    file=source.location,
                    line=fault.metadata.get("line"),
                    column=fault.metadata.get("column"),
                )
            report.record(fault, source_id=source.id, span=span, logger=logger)
        except Exception as exc:
            logger.exception(f"Unexpected failure loading {source.id}")
            report.record(
                SourceFault(
                    "SOURCE_LOAD_FAILED",
                    f"Loading '{source.id}' failed: {exc}",
                    severity=Severity.ERROR,
                    metadata={"origin": source.id},
                ),
                source_id=source.id,
            )
        return None

    async def load_dependencies(self, report: Optional[LoadReport] = None) -> List[LoadedManifest]:
        """
        Load the manifests of every declared dependency.

        Missing or unreadable dependency manifests are skipped.
        """
        report = report if report is not None else LoadReport()
        sources = self.discover_dependencies(report)
        results = await asyncio.gather(*(self._read_isolated(s, report) for s in sources))
        return [r for r in results if r is not None]

    # ── Pipeline ─────────────────────────────────────────────────────

    def sources(self, report: LoadReport) -> List[ManifestSource]:
        """Every source of one load cycle, in merge order."""
        sources: List[ManifestSource] = []

        local = self.discover()
        if local is not None:
            sources.append(local)

        libraries = self.discover_libraries()
        sources.extend(libraries)

        provided = {s.package for s in libraries if s.package}
        sources.extend(self.discover_dependencies(report, skip=provided))
        return sources

    async def load_all(self, generation: int = 0) -> Registry:
        """
        Run the full pipeline and build a new Registry.

        Sources are read concurrently but merged in a fixed order so that
        precedence does not depend on I/O timing.

        Args:
            generation: Load cycle number stamped on the registry

        Returns:
            Registry (possibly empty, never None)
        """
        report = LoadReport()
        builder = RegistryBuilder(report=report)
        indexer = ManifestIndexer(self.config)

        sources = self.sources(report)
        logger.debug(f"Loading {len(sources)} manifest source(s)")
        results = await asyncio.gather(*(self._read_isolated(s, report) for s in sources))

        for loaded in results:
            if loaded is None:
                continue
            components = indexer.index(loaded.data, loaded.source, report, text=loaded.text)
            builder.add_source(loaded.source, components, loaded.text)

        return builder.build(generation)
