"""
Manifest loader tests.

Tests local/dependency/remote discovery, per-source fault isolation,
merge precedence and remote fetching through httpx.MockTransport.
"""

import httpx
import pytest

from wclens.config import LibraryConfig, ProjectConfig
from wclens.faults import ManifestParseFault, NetworkFault, SourceNotFoundFault
from wclens.registry import LoadReport, ManifestLoader, ManifestSource, is_url


def _dependency(root, name, manifest, write_file, *, declared=None):
    package_root = root / "node_modules" / name
    package_root.mkdir(parents=True, exist_ok=True)
    if declared:
        write_file(package_root / "package.json", {"name": name, "customElements": declared})
        write_file(package_root / declared, manifest)
    else:
        write_file(package_root / "custom-elements.json", manifest)


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ============================================================================
# Discovery
# ============================================================================

class TestDiscovery:

    def test_is_url(self):
        assert is_url("https://cdn.example.com/ce.json")
        assert is_url("www.example.com/ce.json")
        assert not is_url("./dist/custom-elements.json")

    def test_conventional_root(self, project_dir):
        source = ManifestLoader(ProjectConfig(root=project_dir)).discover()
        assert source.kind == "local"
        assert source.package is None
        assert source.location == str(project_dir / "custom-elements.json")

    def test_conventional_order(self, tmp_path, button_manifest, write_file):
        write_file(tmp_path / "build" / "custom-elements.json", button_manifest)
        write_file(tmp_path / "dist" / "custom-elements.json", button_manifest)
        source = ManifestLoader(ProjectConfig(root=tmp_path)).discover()
        assert source.location == str(tmp_path / "dist" / "custom-elements.json")

    def test_no_manifest(self, tmp_path):
        assert ManifestLoader(ProjectConfig(root=tmp_path)).discover() is None

    def test_explicit_manifest_src(self, tmp_path, button_manifest, write_file):
        write_file(tmp_path / "meta" / "elements.json", button_manifest)
        config = ProjectConfig(root=tmp_path, manifest_src="meta/elements.json")
        source = ManifestLoader(config).discover()
        assert source.location == str(tmp_path / "meta" / "elements.json")

    def test_missing_explicit_falls_back(self, project_dir):
        config = ProjectConfig(root=project_dir, manifest_src="missing.json")
        source = ManifestLoader(config).discover()
        assert source.location == str(project_dir / "custom-elements.json")

    def test_remote_manifest_src(self, tmp_path):
        config = ProjectConfig(root=tmp_path, manifest_src="www.example.com/ce.json")
        source = ManifestLoader(config).discover()
        assert source.is_remote
        assert source.location == "https://www.example.com/ce.json"

    def test_file_url(self, tmp_path, button_manifest, write_file):
        path = write_file(tmp_path / "x" / "ce.json", button_manifest)
        config = ProjectConfig(root=tmp_path, manifest_src=path.as_uri())
        source = ManifestLoader(config).discover()
        assert source.kind == "local"
        assert source.location == str(path)

    def test_source_ids(self):
        assert ManifestSource("local", "/a/ce.json").id == "/a/ce.json"
        assert ManifestSource("dependency", "/a/ce.json", "acme").id == "acme:/a/ce.json"
        assert ManifestSource("remote", "https://x/ce.json").uri == "https://x/ce.json"


class TestDependencies:

    def test_declared_manifest(self, tmp_path, library_manifest, write_file):
        write_file(tmp_path / "package.json", {"dependencies": {"acme-ui": "^1.0.0"}})
        _dependency(tmp_path, "acme-ui", library_manifest, write_file, declared="meta/ce.json")
        sources = ManifestLoader(ProjectConfig(root=tmp_path)).discover_dependencies()
        assert len(sources) == 1
        assert sources[0].package == "acme-ui"
        assert sources[0].location.endswith("meta/ce.json")

    def test_fallback_location(self, tmp_path, library_manifest, write_file):
        write_file(tmp_path / "package.json", {"dependencies": {"acme-ui": "^1.0.0"}})
        _dependency(tmp_path, "acme-ui", library_manifest, write_file)
        sources = ManifestLoader(ProjectConfig(root=tmp_path)).discover_dependencies()
        assert sources[0].location.endswith("custom-elements.json")

    def test_scoped_package(self, tmp_path, library_manifest, write_file):
        write_file(tmp_path / "package.json", {"dependencies": {"@acme/ui": "1.0.0"}})
        _dependency(tmp_path, "@acme/ui", library_manifest, write_file)
        sources = ManifestLoader(ProjectConfig(root=tmp_path)).discover_dependencies()
        assert sources[0].package == "@acme/ui"

    def test_missing_dependency_recorded_quietly(self, tmp_path, write_file):
        write_file(tmp_path / "package.json", {"dependencies": {"lodash": "4"}})
        report = LoadReport()
        assert ManifestLoader(ProjectConfig(root=tmp_path)).discover_dependencies(report) == []
        assert report.faults("SOURCE_NOT_FOUND")
        assert not report.has_faults()

    def test_broken_package_json(self, tmp_path):
        (tmp_path / "package.json").write_text("{ nope")
        assert ManifestLoader(ProjectConfig(root=tmp_path)).dependency_names() == []

    def test_library_skips_dependency(self, tmp_path, library_manifest, write_file):
        write_file(tmp_path / "package.json", {"dependencies": {"acme-ui": "1"}})
        _dependency(tmp_path, "acme-ui", library_manifest, write_file)
        write_file(tmp_path / "vendor" / "acme.json", library_manifest)
        config = ProjectConfig(
            root=tmp_path,
            libraries={"acme-ui": LibraryConfig(manifest_src="vendor/acme.json")},
        )
        sources = ManifestLoader(config).sources(LoadReport())
        assert [s.location for s in sources] == [str(tmp_path / "vendor" / "acme.json")]


# ============================================================================
# Reading
# ============================================================================

class TestLoad:

    @pytest.mark.asyncio
    async def test_load_local(self, project_dir):
        loader = ManifestLoader(ProjectConfig(root=project_dir))
        loaded = await loader.load(loader.discover())
        assert loaded.data["schemaVersion"] == "1.0.0"
        assert '"tagName": "my-button"' in loaded.text

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path):
        loader = ManifestLoader(ProjectConfig(root=tmp_path))
        with pytest.raises(SourceNotFoundFault):
            await loader.load(ManifestSource("local", str(tmp_path / "nope.json")))

    @pytest.mark.asyncio
    async def test_invalid_json_raises_parse_fault(self, tmp_path):
        path = tmp_path / "custom-elements.json"
        path.write_text('{\n  "modules": [\n    oops\n  ]\n}')
        loader = ManifestLoader(ProjectConfig(root=tmp_path))
        with pytest.raises(ManifestParseFault) as exc_info:
            await loader.load(ManifestSource("local", str(path)))
        assert exc_info.value.metadata["line"] == 3

    @pytest.mark.asyncio
    async def test_non_object_raises_parse_fault(self, tmp_path):
        path = tmp_path / "custom-elements.json"
        path.write_text("[1, 2]")
        loader = ManifestLoader(ProjectConfig(root=tmp_path))
        with pytest.raises(ManifestParseFault, match="not an object"):
            await loader.load(ManifestSource("local", str(path)))

    @pytest.mark.asyncio
    async def test_remote(self, tmp_path, library_manifest):
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, json=library_manifest)

        async with _mock_client(handler) as client:
            loader = ManifestLoader(ProjectConfig(root=tmp_path), http_client=client)
            loaded = await loader.load_remote("https://cdn.example.com/ce.json", "acme")
        assert requested == ["https://cdn.example.com/ce.json"]
        assert loaded.source.package == "acme"
        assert loaded.source.is_remote

    @pytest.mark.asyncio
    async def test_remote_http_error(self, tmp_path):
        async with _mock_client(lambda request: httpx.Response(404)) as client:
            loader = ManifestLoader(ProjectConfig(root=tmp_path), http_client=client)
            with pytest.raises(NetworkFault, match="HTTP 404"):
                await loader.load_remote("https://cdn.example.com/ce.json")

    @pytest.mark.asyncio
    async def test_remote_timeout(self, tmp_path):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        async with _mock_client(handler) as client:
            loader = ManifestLoader(ProjectConfig(root=tmp_path), http_client=client, timeout=2.0)
            with pytest.raises(NetworkFault, match="timed out after 2.0s"):
                await loader.load_remote("https://cdn.example.com/ce.json")

    @pytest.mark.asyncio
    async def test_remote_invalid_body(self, tmp_path):
        async with _mock_client(lambda request: httpx.Response(200, text="<html>")) as client:
            loader = ManifestLoader(ProjectConfig(root=tmp_path), http_client=client)
            with pytest.raises(ManifestParseFault):
                await loader.load_remote("https://cdn.example.com/ce.json")

    @pytest.mark.asyncio
    async def test_unsupported_scheme(self, tmp_path):
        loader = ManifestLoader(ProjectConfig(root=tmp_path))
        with pytest.raises(NetworkFault, match="unsupported"):
            await loader.load_remote("ftp://example.com/ce.json")


# ============================================================================
# Pipeline
# ============================================================================

class TestLoadAll:

    @pytest.mark.asyncio
    async def test_local_and_dependency(self, project_dir, library_manifest, write_file):
        write_file(project_dir / "package.json", {"dependencies": {"acme-ui": "1"}})
        _dependency(project_dir, "acme-ui", library_manifest, write_file)

        registry = await ManifestLoader(ProjectConfig(root=project_dir)).load_all(generation=3)

        assert registry.generation == 3
        assert registry.tags() == ["my-button", "old-card", "lib-badge"]
        assert registry.get("my-button").package is None
        assert registry.get_attribute("my-button", "shadowed") is None
        assert registry.get("lib-badge").package == "acme-ui"
        assert registry.css_hook("property", "--button-color").description == "Text color."
        assert registry.css_hook("property", "--badge-color") is not None

    @pytest.mark.asyncio
    async def test_broken_source_isolated(self, tmp_path, library_manifest, write_file):
        (tmp_path / "custom-elements.json").write_text("{ broken")
        write_file(tmp_path / "package.json", {"dependencies": {"acme-ui": "1"}})
        _dependency(tmp_path, "acme-ui", library_manifest, write_file)

        registry = await ManifestLoader(ProjectConfig(root=tmp_path)).load_all()

        assert registry.tags() == ["lib-badge", "my-button"]
        entry = registry.report.entries[0]
        assert entry.fault.code == "MANIFEST_PARSE_ERROR"
        assert entry.span.line == 1

    @pytest.mark.asyncio
    async def test_remote_library_failure_isolated(self, project_dir):
        config = ProjectConfig(
            root=project_dir,
            libraries={"acme": LibraryConfig(manifest_src="https://cdn.example.com/ce.json")},
        )
        async with _mock_client(lambda request: httpx.Response(500)) as client:
            registry = await ManifestLoader(config, http_client=client).load_all()
        assert "my-button" in registry
        assert registry.report.faults("NETWORK_ERROR")

    @pytest.mark.asyncio
    async def test_remote_library(self, project_dir, library_manifest):
        config = ProjectConfig(
            root=project_dir,
            libraries={"acme": LibraryConfig(manifest_src="https://cdn.example.com/ce.json")},
        )
        async with _mock_client(lambda request: httpx.Response(200, json=library_manifest)) as client:
            registry = await ManifestLoader(config, http_client=client).load_all()
        assert registry.get("lib-badge").package == "acme"
        assert registry.source(registry.get("lib-badge").source_id).is_remote

    @pytest.mark.asyncio
    async def test_empty_project(self, tmp_path):
        registry = await ManifestLoader(ProjectConfig(root=tmp_path)).load_all()
        assert len(registry) == 0
        assert registry.fingerprint

    @pytest.mark.asyncio
    async def test_load_dependencies(self, tmp_path, library_manifest, write_file):
        write_file(tmp_path / "package.json", {"dependencies": {"acme-ui": "1", "missing": "1"}})
        _dependency(tmp_path, "acme-ui", library_manifest, write_file)
        loaded = await ManifestLoader(ProjectConfig(root=tmp_path)).load_dependencies()
        assert [m.source.package for m in loaded] == ["acme-ui"]
