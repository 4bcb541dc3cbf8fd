"""
Project context tests.

Tests the load lifecycle, reload coalescing, debounced file-change
handling, subscriber notification and the never-raising request facades.
"""

import asyncio
import logging

import httpx
import pytest

from wclens.completion import CompletionEngine
from wclens.config import ProjectConfig
from wclens.project import ProjectContext, WATCHED_FILE_NAMES


def _count_builds(project, on_build=None):
    """Wrap the snapshot builder so tests can count (and hook into) loads."""
    calls = []
    original = project._build_snapshot

    async def counting():
        calls.append(len(calls) + 1)
        if on_build is not None:
            await on_build(len(calls))
        return await original()

    project._build_snapshot = counting
    return calls


# ============================================================================
# Lifecycle
# ============================================================================

class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_loads_registry(self, project_dir):
        project = ProjectContext(project_dir)
        registry = await project.start()
        assert registry.get("my-button") is not None
        assert project.registry is registry
        assert registry.generation == 1
        await project.close()

    @pytest.mark.asyncio
    async def test_empty_before_start(self, project_dir):
        project = ProjectContext(project_dir)
        assert len(project.registry) == 0
        assert not project.loading

    @pytest.mark.asyncio
    async def test_ready_waits_for_load(self, project_dir):
        project = ProjectContext(project_dir)
        project.start()
        assert project.loading
        registry = await project.ready()
        assert registry.get("my-button") is not None
        assert not project.loading

    @pytest.mark.asyncio
    async def test_project_without_manifest(self, tmp_path):
        project = ProjectContext(tmp_path)
        registry = await project.start()
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_config_file_is_loaded(self, project_dir, write_file):
        write_file(project_dir / "wc.config.json", {"diagnosticSeverity": {"unknownElement": "off"}})
        project = ProjectContext(project_dir)
        await project.start()
        assert project.config.source_path == (project_dir / "wc.config.json").resolve()
        assert await project.diagnostics("<x-a></x-a>") == []

    @pytest.mark.asyncio
    async def test_explicit_config(self, project_dir):
        config = ProjectConfig(root=project_dir, diagnostic_severity={"unknownElement": "error"})
        project = ProjectContext(project_dir, config=config)
        await project.start()
        assert project.config is config

    @pytest.mark.asyncio
    async def test_injected_http_client(self, tmp_path, library_manifest):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=library_manifest))
        config = ProjectConfig(root=tmp_path, manifest_src="https://cdn.example.com/custom-elements.json")
        async with httpx.AsyncClient(transport=transport) as client:
            project = ProjectContext(tmp_path, config=config, http_client=client)
            registry = await project.start()
        assert registry.get("lib-badge") is not None


# ============================================================================
# Reload
# ============================================================================

class TestReload:

    @pytest.mark.asyncio
    async def test_generation_increments(self, project_dir):
        project = ProjectContext(project_dir)
        await project.start()
        registry = await project.reload()
        assert registry.generation == 2

    @pytest.mark.asyncio
    async def test_requests_before_load_starts_share_it(self, project_dir):
        project = ProjectContext(project_dir)
        calls = _count_builds(project)
        first = project.reload()
        second = project.reload()
        assert first is second
        await first
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_request_during_load_runs_once_more(self, project_dir):
        project = ProjectContext(project_dir)
        futures = []

        async def on_build(count):
            if count == 1:
                futures.append(project.reload())
                futures.append(project.reload())

        calls = _count_builds(project, on_build)
        first = project.reload()
        registry = await first

        assert calls == [1, 2]
        assert all(f is first for f in futures)
        assert registry.generation == 2

    @pytest.mark.asyncio
    async def test_reload_picks_up_changes(self, project_dir, button_manifest, write_file):
        project = ProjectContext(project_dir)
        await project.start()
        button_manifest["modules"][0]["declarations"][0]["tagName"] = "new-button"
        write_file(project_dir / "custom-elements.json", button_manifest)

        registry = await project.reload()
        assert registry.get("new-button") is not None
        assert registry.get("my-button") is None

    @pytest.mark.asyncio
    async def test_old_registry_served_until_swap(self, project_dir):
        project = ProjectContext(project_dir)
        old = await project.start()
        release = asyncio.Event()

        async def on_build(count):
            await release.wait()

        _count_builds(project, on_build)
        pending = project.reload()
        waiting = asyncio.ensure_future(project.ready())
        await asyncio.sleep(0)

        assert project.registry is old
        assert not waiting.done()

        release.set()
        new = await pending
        assert new is not old
        assert await waiting is new

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_registry(self, project_dir, caplog):
        project = ProjectContext(project_dir)
        old = await project.start()

        async def broken():
            raise RuntimeError("disk on fire")

        project._build_snapshot = broken
        with caplog.at_level(logging.ERROR, logger="wclens.project"):
            registry = await project.reload()

        assert registry is old
        assert "failed" in caplog.text


# ============================================================================
# File changes
# ============================================================================

class TestFileChanges:

    @pytest.mark.asyncio
    async def test_debounced_calls_share_one_reload(self, project_dir):
        project = ProjectContext(project_dir, debounce=0.01)
        await project.start()
        calls = _count_builds(project)

        first = project.schedule_reload()
        second = project.schedule_reload()
        assert first is second

        registry = await first
        assert calls == [1]
        assert registry.generation == 2

    @pytest.mark.asyncio
    async def test_new_window_after_reload(self, project_dir):
        project = ProjectContext(project_dir, debounce=0.01)
        await project.start()
        first = project.schedule_reload()
        await first
        second = project.schedule_reload()
        assert second is not first
        await second

    @pytest.mark.parametrize("name", sorted(WATCHED_FILE_NAMES))
    @pytest.mark.asyncio
    async def test_watched_names(self, project_dir, name):
        project = ProjectContext(project_dir, debounce=10)
        future = project.notify_file_changed(project_dir / name)
        assert future is not None
        await project.close()
        assert future.cancelled()

    @pytest.mark.asyncio
    async def test_unrelated_file_ignored(self, project_dir):
        project = ProjectContext(project_dir)
        await project.start()
        assert project.notify_file_changed(project_dir / "src" / "app.ts") is None

    @pytest.mark.asyncio
    async def test_configured_manifest_is_watched(self, tmp_path, button_manifest, write_file):
        write_file(tmp_path / "meta" / "elements.json", button_manifest)
        project = ProjectContext(tmp_path, config=ProjectConfig(root=tmp_path, manifest_src="meta/elements.json"))
        await project.start()
        assert project.is_watched(tmp_path / "meta" / "elements.json")
        assert project.is_watched("meta/elements.json")


# ============================================================================
# Subscribers
# ============================================================================

class TestSubscribers:

    @pytest.mark.asyncio
    async def test_listener_receives_new_registry(self, project_dir):
        project = ProjectContext(project_dir)
        received = []
        project.subscribe(received.append)
        registry = await project.start()
        assert received == [registry]

    @pytest.mark.asyncio
    async def test_async_listener(self, project_dir):
        project = ProjectContext(project_dir)
        received = []

        async def listener(registry):
            received.append(registry.generation)

        project.subscribe(listener)
        await project.start()
        await asyncio.sleep(0)
        assert received == [1]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, project_dir):
        project = ProjectContext(project_dir)
        received = []
        unsubscribe = project.subscribe(received.append)
        await project.start()
        unsubscribe()
        unsubscribe()
        await project.reload()
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_listener_errors_are_logged(self, project_dir, caplog):
        project = ProjectContext(project_dir)
        received = []

        def broken(registry):
            raise ValueError("listener bug")

        project.subscribe(broken)
        project.subscribe(received.append)
        with caplog.at_level(logging.ERROR, logger="wclens.project"):
            await project.start()

        assert len(received) == 1
        assert "listener bug" in caplog.text

    @pytest.mark.asyncio
    async def test_async_listener_errors_are_logged(self, project_dir, caplog):
        project = ProjectContext(project_dir)

        async def broken(registry):
            raise RuntimeError("async listener bug")

        project.subscribe(broken)
        with caplog.at_level(logging.ERROR, logger="wclens.project"):
            await project.start()
            await project.close()

        assert "Registry listener raised exception: async listener bug" in caplog.text
        assert not project._listener_tasks


# ============================================================================
# Requests
# ============================================================================

class TestRequests:

    @pytest.mark.asyncio
    async def test_requests_wait_for_initial_load(self, project_dir):
        project = ProjectContext(project_dir)
        project.start()
        items = await project.complete("<my-", 4)
        assert [item.label for item in items] == ["my-button", "old-card"]

    @pytest.mark.asyncio
    async def test_facades(self, project_dir):
        project = ProjectContext(project_dir)
        await project.start()
        markup = '<my-button variant="huge"></my-button>'

        assert len(await project.tag_completions()) == 2
        assert await project.attribute_completions("my-button", prefix="@")
        assert len(await project.attribute_value_completions("my-button", "variant")) == 3
        assert await project.css_completions()
        assert (await project.hover(markup, 3)) is not None
        assert (await project.css_hover("a { color: var(--button-color) }", 20)) is not None
        assert (await project.definition(markup, 3)).uri.endswith("custom-elements.json")
        diagnostics = await project.diagnostics(markup)
        assert [d.code for d in diagnostics] == ["invalidAttributeValue"]

    @pytest.mark.asyncio
    async def test_excluded_paths(self, project_dir):
        config = ProjectConfig(root=project_dir, exclude=["vendor/**"])
        project = ProjectContext(project_dir, config=config)
        await project.start()
        markup = "<x-a></x-a>"

        assert await project.diagnostics(markup, path="vendor/page.html") == []
        assert await project.complete("<my-", 4, path="vendor/page.html") == []
        assert await project.hover("<my-button></my-button>", 3, path="vendor/page.html") is None
        assert await project.diagnostics(markup, path="src/page.html")

    @pytest.mark.asyncio
    async def test_failures_are_contained(self, project_dir, monkeypatch, caplog):
        project = ProjectContext(project_dir)
        await project.start()

        def boom(self, *args, **kwargs):
            raise RuntimeError("engine bug")

        monkeypatch.setattr(CompletionEngine, "complete", boom)
        with caplog.at_level(logging.ERROR, logger="wclens.project"):
            assert await project.complete("<my-", 4) == []
        assert "Completion failed" in caplog.text
