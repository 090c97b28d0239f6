"""Tests for project package rules loading and merging."""

import orjson
import pytest

from catalog_updater.config.package_rules import (
    PackageRulesConfig,
    load_package_rules,
    matches_pattern,
    merge_with_defaults,
    patterns_overlap,
)
from catalog_updater.exceptions import ConfigurationError


@pytest.mark.parametrize(
    ("name", "pattern", "expected"),
    [
        ("@types/node", "@types/*", True),
        ("eslint-plugin-react", "eslint*", True),
        ("React", "react", True),
        ("lodash", "lodash?", False),
        ("lodash1", "lodash?", True),
    ],
)
def test_matches_pattern(name, pattern, expected):
    assert matches_pattern(name, pattern) is expected


def test_patterns_overlap():
    assert patterns_overlap("@types/*", "@types/node")
    assert not patterns_overlap("vue", "react")


class TestDefaults:
    def test_defaults_without_project_file(self, tmp_path):
        rules = load_package_rules(tmp_path)
        assert rules == PackageRulesConfig()
        assert rules.defaults.target == "latest"
        assert rules.monorepo.catalog_priority == ("default",)

    def test_related_package_rule_wins(self):
        rules = PackageRulesConfig()
        rule = rules.find_rule("@types/react")
        assert rule is not None
        assert "react" in rule.patterns

    def test_unmatched_package_uses_default_target(self):
        config = PackageRulesConfig().get_package_config("lodash")
        assert config.should_update
        assert config.target == "latest"
        assert not config.require_confirmation

    def test_exclude_and_include(self):
        rules = PackageRulesConfig().with_patterns(
            include=["lodash", "react*"], exclude=["react-dom"]
        )
        assert rules.get_package_config("lodash").should_update
        assert rules.get_package_config("react").should_update
        assert not rules.get_package_config("react-dom").should_update
        assert not rules.get_package_config("axios").should_update


class TestMerge:
    def test_lists_append_and_objects_merge(self):
        rules = merge_with_defaults(
            {
                "exclude": ["legacy-*"],
                "defaults": {"target": "minor"},
                "security": {"notifyOnSecurityUpdate": True},
                "advanced": {"concurrency": 3},
            }
        )
        assert rules.exclude == ("legacy-*",)
        assert rules.defaults.target == "minor"
        assert rules.defaults.include_prerelease is False
        assert rules.security.notify_on_security_update is True
        assert rules.security.allow_major_for_security is True
        assert rules.advanced.concurrency == 3
        assert rules.advanced.rate_limit is None

    def test_monorepo_lists_replace(self):
        rules = merge_with_defaults(
            {"monorepo": {"syncVersions": ["react"], "catalogPriority": ["b", "a"]}}
        )
        assert rules.monorepo.sync_versions == ("react",)
        assert rules.monorepo.catalog_priority == ("b", "a")

    def test_user_rule_replaces_overlapping_default(self):
        rules = merge_with_defaults(
            {"packageRules": [{"patterns": ["@types/*"], "target": "patch"}]}
        )
        rule = rules.find_rule("@types/lodash")
        assert rule is not None
        assert rule.target == "patch"
        assert all("@types/node" not in r.patterns for r in rules.package_rules)


class TestLoad:
    def test_loads_pcurc(self, tmp_path):
        (tmp_path / ".pcurc.json").write_bytes(
            orjson.dumps({"defaults": {"target": "patch"}})
        )
        rules = load_package_rules(tmp_path)
        assert rules.defaults.target == "patch"
        assert rules.source == tmp_path / ".pcurc.json"

    def test_falls_back_to_pcu_config(self, tmp_path):
        (tmp_path / "pcu.config.json").write_bytes(
            orjson.dumps({"include": ["lodash"]})
        )
        assert load_package_rules(tmp_path).include == ("lodash",)

    def test_invalid_json_raises(self, tmp_path):
        (tmp_path / ".pcurc.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_package_rules(tmp_path)

    def test_schema_violation_raises(self, tmp_path):
        (tmp_path / ".pcurc.json").write_bytes(
            orjson.dumps({"defaults": {"target": "sometimes"}})
        )
        with pytest.raises(ConfigurationError) as exc_info:
            load_package_rules(tmp_path)
        assert "target" in str(exc_info.value)
