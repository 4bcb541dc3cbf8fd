"""
Per-project context - owns the registry snapshot of one project.

Replaces process-wide caches with an explicit object per project root:
- ``start()`` / ``reload()`` run the load pipeline and return awaitables
- reload requests arriving during a load are coalesced into one re-run
- ``schedule_reload()`` debounces bursts of file-change notifications
- subscribers are notified once each new registry is published
- request methods (completion, hover, definition, diagnostics) wait for
  an in-flight load, read one immutable snapshot, and never raise
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Set, TypeVar, Union

import httpx
from lsprotocol import types as lsp

from .completion import CompletionEngine
from .config import CONFIG_FILE_NAMES, ConfigLoader, ProjectConfig
from .definition import find_definition
from .diagnostics import DiagnosticEngine
from .hover import css_hover, markup_hover
from .registry import ManifestLoader, Registry
from .registry.loader import MANIFEST_FILE_NAME

logger = logging.getLogger("wclens.project")

T = TypeVar("T")

DEFAULT_DEBOUNCE = 0.3

# File names whose change invalidates the registry.
WATCHED_FILE_NAMES = frozenset({MANIFEST_FILE_NAME, "package.json", ".env", *CONFIG_FILE_NAMES})

RegistryListener = Callable[[Registry], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class ProjectSnapshot:
    """Everything a request reads, published as one unit."""

    registry: Registry
    config: ProjectConfig
    completion: CompletionEngine
    diagnostics: DiagnosticEngine

    @classmethod
    def build(cls, registry: Registry, config: ProjectConfig) -> "ProjectSnapshot":
        return cls(
            registry=registry,
            config=config,
            completion=CompletionEngine(registry),
            diagnostics=DiagnosticEngine(registry, config),
        )


class ProjectContext:
    """
    Metadata intelligence for one project root.

    Example:
        ```python
        project = ProjectContext("/path/to/app")
        await project.start()
        items = await project.complete(text, offset)
        ```
    """

    def __init__(
        self,
        root: Union[str, Path] = ".",
        *,
        config: Optional[ProjectConfig] = None,
        config_path: Union[str, Path, None] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        debounce: float = DEFAULT_DEBOUNCE,
    ):
        self.root = Path(root).resolve()
        self.debounce = debounce
        self._explicit_config = config
        self._config_path = config_path
        self._http_client = http_client

        initial_config = config or ProjectConfig(root=self.root)
        self._snapshot = ProjectSnapshot.build(Registry.empty(), initial_config)
        self._generation = 0

        self._load_task: Optional[asyncio.Task] = None
        self._pending = False
        self._debounce_task: Optional[asyncio.Task] = None
        self._debounce_future: Optional[asyncio.Future] = None
        self._listeners: List[RegistryListener] = []
        self._listener_tasks: Set[asyncio.Task] = set()

    def __repr__(self) -> str:
        return f"<ProjectContext root={self.root} generation={self._generation}>"

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> "asyncio.Future[Registry]":
        """Run the initial load. Returns an awaitable for the first registry."""
        logger.info(f"Starting project context for {self.root}")
        return self.reload()

    async def close(self) -> None:
        """Cancel pending debounced reloads, then wait for an in-flight load and async listeners."""
        if self._debounce_task is not None:
            self._debounce_task.cancel()
            self._debounce_task = None
        if self._debounce_future is not None and not self._debounce_future.done():
            self._debounce_future.cancel()
        self._debounce_future = None
        if self._load_task is not None and not self._load_task.done():
            await asyncio.shield(self._load_task)
        if self._listener_tasks:
            await asyncio.gather(*self._listener_tasks)
        self._listeners.clear()

    @property
    def registry(self) -> Registry:
        """Currently published registry (does not wait for a load)."""
        return self._snapshot.registry

    @property
    def config(self) -> ProjectConfig:
        return self._snapshot.config

    @property
    def loading(self) -> bool:
        return self._load_task is not None and not self._load_task.done()

    # ── Reload ───────────────────────────────────────────────────────

    def reload(self) -> "asyncio.Future[Registry]":
        """
        Rebuild the registry from scratch.

        When a load is already in flight it is allowed to finish and then
        runs once more; every caller in between shares the same future.

        Returns:
            Future resolving to the newly published Registry
        """
        if self._load_task is not None and not self._load_task.done():
            self._pending = True
            logger.debug("Reload requested during load, coalescing")
            return self._load_task

        loop = asyncio.get_running_loop()
        self._pending = False
        self._load_task = loop.create_task(self._reload_loop())
        return self._load_task

    def schedule_reload(self) -> "asyncio.Future[Registry]":
        """
        Debounced reload.

        Calls within the debounce window collapse into one reload; they
        all receive the same future.
        """
        loop = asyncio.get_running_loop()
        if self._debounce_future is None or self._debounce_future.done():
            self._debounce_future = loop.create_future()
        if self._debounce_task is not None:
            self._debounce_task.cancel()
        self._debounce_task = loop.create_task(self._debounced_reload(self._debounce_future))
        return self._debounce_future

    async def _debounced_reload(self, future: asyncio.Future) -> None:
        await asyncio.sleep(self.debounce)

        # The window is closed; later notifications start a new one.
        self._debounce_task = None
        self._debounce_future = None

        registry = await asyncio.shield(self.reload())
        if not future.done():
            future.set_result(registry)

    async def _reload_loop(self) -> Registry:
        while True:
            self._pending = False
            try:
                snapshot = await self._build_snapshot()
            except Exception:
                logger.exception(f"Reload of {self.root} failed, keeping generation {self._generation}")
            else:
                self._snapshot = snapshot
                self._generation = snapshot.registry.generation
                self._notify(snapshot.registry)

            if not self._pending:
                return self._snapshot.registry
            logger.debug("Re-running load for requests received while loading")

    async def _build_snapshot(self) -> ProjectSnapshot:
        if self._explicit_config is not None:
            config = self._explicit_config
        else:
            config = ConfigLoader.load(self.root, self._config_path)

        loader = ManifestLoader(config, http_client=self._http_client)
        registry = await loader.load_all(generation=self._generation + 1)
        return ProjectSnapshot.build(registry, config)

    async def ready(self) -> Registry:
        """Wait for an in-flight load, then return the published registry."""
        return (await self.snapshot()).registry

    async def snapshot(self) -> ProjectSnapshot:
        if self._load_task is not None and not self._load_task.done():
            await asyncio.shield(self._load_task)
        return self._snapshot

    # ── Notifications ────────────────────────────────────────────────

    def subscribe(self, listener: RegistryListener) -> Callable[[], None]:
        """
        Register a callback for newly published registries.

        Args:
            listener: Called with the new Registry (may be a coroutine function)

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, registry: Registry) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(registry)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(self._safe_notify(result))
                    self._listener_tasks.add(task)
                    task.add_done_callback(self._listener_tasks.discard)
            except Exception as e:
                logger.error(f"Registry listener raised exception: {e}")

    async def _safe_notify(self, pending: Awaitable[None]) -> None:
        """Await an async listener with error resilience."""
        try:
            await pending
        except Exception as e:
            logger.error(f"Registry listener raised exception: {e}")

    def is_watched(self, path: Union[str, Path]) -> bool:
        """Whether a change to ``path`` affects the registry."""
        changed = Path(path)
        if changed.name in WATCHED_FILE_NAMES:
            return True
        resolved = str(changed.resolve()) if changed.is_absolute() else str((self.root / changed).resolve())
        if self.config.source_path is not None and resolved == str(Path(self.config.source_path).resolve()):
            return True
        return any(
            not source.is_remote and str(Path(source.location).resolve()) == resolved
            for source in self.registry.sources()
        )

    def notify_file_changed(self, path: Union[str, Path]) -> Optional["asyncio.Future[Registry]"]:
        """
        Route a file-system event.

        Returns:
            The debounced reload future, or None for unrelated files
        """
        if not self.is_watched(path):
            return None
        logger.debug(f"Watched file changed: {path}")
        return self.schedule_reload()

    # ── Requests ─────────────────────────────────────────────────────

    async def _guarded(
        self,
        operation: str,
        default: T,
        path: Union[str, Path, None],
        handler: Callable[[ProjectSnapshot], T],
    ) -> T:
        try:
            snapshot = await self.snapshot()
            if path is not None and not snapshot.config.should_include(path):
                return default
            return handler(snapshot)
        except Exception:
            logger.exception(f"{operation} failed")
            return default

    async def complete(
        self, text: str, offset: int, *, path: Union[str, Path, None] = None
    ) -> List[lsp.CompletionItem]:
        """Context-dependent completions at ``offset`` in markup."""
        return await self._guarded(
            "Completion", [], path, lambda s: s.completion.complete(text, offset)
        )

    async def tag_completions(self, include_open_bracket: bool = False) -> List[lsp.CompletionItem]:
        return await self._guarded(
            "Tag completion", [], None, lambda s: s.completion.tag_completions(include_open_bracket)
        )

    async def attribute_completions(
        self, tag: str, prefix: Optional[str] = None, context_text: Optional[str] = None
    ) -> List[lsp.CompletionItem]:
        return await self._guarded(
            "Attribute completion",
            [],
            None,
            lambda s: s.completion.attribute_completions(tag, prefix, context_text),
        )

    async def attribute_value_completions(self, tag: str, attribute: str) -> List[lsp.CompletionItem]:
        return await self._guarded(
            "Value completion",
            [],
            None,
            lambda s: s.completion.attribute_value_completions(tag, attribute),
        )

    async def css_completions(self) -> List[lsp.CompletionItem]:
        return await self._guarded("CSS completion", [], None, lambda s: s.completion.css_completions())

    async def hover(
        self, text: str, offset: int, *, path: Union[str, Path, None] = None
    ) -> Optional[lsp.Hover]:
        return await self._guarded(
            "Hover", None, path, lambda s: markup_hover(s.registry, text, offset)
        )

    async def css_hover(
        self, text: str, offset: int, *, path: Union[str, Path, None] = None
    ) -> Optional[lsp.Hover]:
        return await self._guarded(
            "CSS hover", None, path, lambda s: css_hover(s.registry, text, offset)
        )

    async def definition(
        self, text: str, offset: int, *, path: Union[str, Path, None] = None
    ) -> Optional[lsp.Location]:
        return await self._guarded(
            "Definition", None, path, lambda s: find_definition(s.registry, text, offset)
        )

    async def diagnostics(
        self,
        text: str,
        *,
        path: Union[str, Path, None] = None,
        roots: Optional[Sequence[Any]] = None,
    ) -> List[lsp.Diagnostic]:
        """Validate a markup document; excluded paths yield no diagnostics."""
        return await self._guarded(
            "Validation", [], path, lambda s: s.diagnostics.validate(text, roots)
        )
