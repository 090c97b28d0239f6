"""Tests for layered npmrc resolution."""

from catalog_updater.config.npmrc import (
    NpmrcConfig,
    load_npmrc_config,
    normalize_registry_url,
)
from catalog_updater.constants import DEFAULT_REGISTRY


def test_normalize_registry_url():
    assert normalize_registry_url('"https://r.example.com"') == (
        "https://r.example.com/"
    )


def test_defaults_without_files(tmp_path):
    config = load_npmrc_config(tmp_path, home_dir=tmp_path / "home", env={})
    assert config.registry == DEFAULT_REGISTRY
    assert config.scoped_registries == {}


def test_project_overrides_home(tmp_path):
    home = tmp_path / "home"
    project = tmp_path / "project"
    home.mkdir()
    project.mkdir()
    (home / ".npmrc").write_text(
        "registry=https://home.example.com\n", encoding="utf-8"
    )
    (project / ".npmrc").write_text(
        "# comment\n"
        "; another\n"
        "registry=https://project.example.com/\n"
        "@acme:registry=https://npm.acme.dev\n"
        "//npm.acme.dev/:_authToken=${ACME_TOKEN}\n",
        encoding="utf-8",
    )
    config = load_npmrc_config(project, home_dir=home, env={"ACME_TOKEN": "s3cret"})

    assert config.registry == "https://project.example.com/"
    assert config.registry_for("@acme/ui") == "https://npm.acme.dev/"
    assert config.registry_for("lodash") == "https://project.example.com/"
    assert config.auth_token_for("https://npm.acme.dev/") == "s3cret"


def test_environment_overrides_files(tmp_path):
    (tmp_path / ".npmrc").write_text(
        "registry=https://file.example.com\n", encoding="utf-8"
    )
    config = load_npmrc_config(
        tmp_path,
        home_dir=tmp_path / "home",
        env={
            "npm_config_registry": "https://env.example.com",
            "npm_config_@corp_registry": "https://corp.example.com",
        },
    )
    assert config.registry == "https://env.example.com/"
    assert config.registry_for("@corp/pkg") == "https://corp.example.com/"


def test_auth_token_missing():
    assert NpmrcConfig().auth_token_for(DEFAULT_REGISTRY) is None
