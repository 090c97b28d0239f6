"""Tests for loading and saving workspaces from disk."""

import pytest
import yaml

from catalog_updater.core.cache import ResponseCache
from catalog_updater.core.workspace import WorkspaceRepository
from catalog_updater.exceptions import ConfigurationError, WorkspaceNotFoundError

DOCUMENT = {
    "packages": ["packages/*", "!packages/legacy"],
    "catalog": {"lodash": "^4.17.20"},
    "catalogs": {"react17": {"react": "^17.0.2"}},
    "onlyBuiltDependencies": ["esbuild"],
}

PACKAGES = {
    "packages/web": {
        "name": "web",
        "dependencies": {"lodash": "catalog:", "react": "catalog:react17"},
    },
    "packages/legacy": {"name": "legacy", "dependencies": {"lodash": "catalog:"}},
    "packages/web/node_modules/dep": {"name": "dep"},
}


@pytest.mark.asyncio
async def test_load_reads_catalogs_and_packages(make_workspace):
    root = make_workspace(DOCUMENT, PACKAGES, root_package={"name": "monorepo"})
    workspace = await WorkspaceRepository().load(root)

    assert workspace.name == "monorepo"
    assert workspace.catalog_names() == ["default", "react17"]
    assert sorted(p.name for p in workspace.packages) == ["monorepo", "web"]
    assert workspace.get_packages_using_catalog_dependency("react17", "react") == [
        "web"
    ]


@pytest.mark.asyncio
async def test_load_accepts_workspace_file_path(make_workspace):
    root = make_workspace(DOCUMENT)
    workspace = await WorkspaceRepository().load(root / "pnpm-workspace.yaml")
    assert workspace.path == root


@pytest.mark.asyncio
async def test_missing_workspace(tmp_path):
    with pytest.raises(WorkspaceNotFoundError):
        await WorkspaceRepository().load(tmp_path)


@pytest.mark.asyncio
async def test_invalid_yaml(tmp_path):
    (tmp_path / "pnpm-workspace.yaml").write_text("catalog: [unclosed", "utf-8")
    with pytest.raises(ConfigurationError):
        await WorkspaceRepository().load(tmp_path)


@pytest.mark.asyncio
async def test_save_keeps_unrelated_keys(make_workspace):
    root = make_workspace(DOCUMENT)
    repository = WorkspaceRepository()
    workspace = await repository.load(root)
    workspace.update_catalog_dependency("default", "lodash", "^4.17.21")

    await repository.save(workspace)

    saved = yaml.safe_load((root / "pnpm-workspace.yaml").read_text("utf-8"))
    assert saved["catalog"] == {"lodash": "^4.17.21"}
    assert saved["onlyBuiltDependencies"] == ["esbuild"]
    assert list(root.glob("*.tmp")) == []


@pytest.mark.asyncio
async def test_cached_document_is_invalidated_on_save(make_workspace):
    root = make_workspace(DOCUMENT)
    cache = ResponseCache("workspace", cleanup_interval=0)
    repository = WorkspaceRepository(cache)
    try:
        first = await repository.load(root)
        first.update_catalog_dependency("default", "lodash", "^4.17.21")
        untouched = await repository.load(root)
        assert str(untouched.get_catalog("default").get_dependency_version(
            "lodash"
        )) == "^4.17.20"

        await repository.save(first)
        reloaded = await repository.load(root)
        assert str(reloaded.get_catalog("default").get_dependency_version(
            "lodash"
        )) == "^4.17.21"
    finally:
        await cache.destroy()


def test_discover_walks_up(make_workspace):
    root = make_workspace(DOCUMENT)
    nested = root / "packages" / "deep"
    nested.mkdir(parents=True)
    assert WorkspaceRepository.discover(nested) == root.resolve()
