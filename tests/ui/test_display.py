"""Tests for report rendering."""

from pathlib import Path

import orjson

from catalog_updater.domain.types import (
    CatalogUpdateInfo,
    OutdatedDependencyInfo,
    OutdatedReport,
    SkippedDependency,
    UpdatedDependency,
    UpdateError,
    UpdateResult,
    WorkspaceInfo,
)
from catalog_updater.ui.display import (
    format_table,
    print_json,
    print_outdated_report,
    print_update_result,
)

WORKSPACE = WorkspaceInfo(Path("/ws"), "ws")


def test_format_table_aligns_columns():
    table = format_table(("Package", "Version"), [("lodash", "4.17.21"), ("a", 1)])
    assert table.splitlines() == [
        "Package  Version",
        "-------  -------",
        "lodash   4.17.21",
        "a        1",
    ]


def test_outdated_report_up_to_date(capsys):
    print_outdated_report(
        OutdatedReport(WORKSPACE, [CatalogUpdateInfo("default", [], 3)])
    )
    assert capsys.readouterr().out == "All catalog dependencies are up to date\n"


def test_outdated_report_table(capsys):
    dep = OutdatedDependencyInfo(
        package_name="lodash",
        current_version="4.17.20",
        latest_version="4.17.21",
        wanted_version="4.17.21",
        update_type="patch",
        is_security_update=True,
        security_vulnerabilities=2,
    )
    print_outdated_report(
        OutdatedReport(WORKSPACE, [CatalogUpdateInfo("default", [dep], 4)])
    )

    out = capsys.readouterr().out
    assert "Catalog: default (1/4 outdated)" in out
    assert "2 vuln" in out
    assert out.rstrip().endswith("1 outdated dependencies")


def test_update_result_dry_run(capsys):
    result = UpdateResult(
        WORKSPACE,
        updated_dependencies=[
            UpdatedDependency("default", "lodash", "4.17.20", "4.17.21", "patch")
        ],
        skipped_dependencies=[SkippedDependency("a", "react", "conflict")],
        errors=[UpdateError("", "", "Failed to save workspace: denied", fatal=True)],
    )
    print_update_result(result, dry_run=True)

    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Would update default:lodash 4.17.20 -> 4.17.21"
    assert lines[1] == "Skipped a:react (conflict)"
    assert lines[2] == "Error Failed to save workspace: denied"
    assert lines[-1] == "1 updated, 1 skipped, 1 errors"


def test_print_json(capsys):
    print_json({"b": [1, 2], "a": None})
    assert orjson.loads(capsys.readouterr().out) == {"b": [1, 2], "a": None}
