"""Plain-text and JSON rendering of reports, plans and results.

Note:
    These functions use print() for direct console output so results are
    always visible regardless of logger configuration.
"""
# ruff: noqa: T201

from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import orjson

if TYPE_CHECKING:
    from catalog_updater.core.backup.service import BackupInfo
    from catalog_updater.core.security.models import OsvReport, SafeVersionResult
    from catalog_updater.domain.types import (
        OutdatedReport,
        UpdatePlan,
        UpdateResult,
    )


def format_table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    """Render rows as a left-aligned plain-text table.

    Args:
        headers: Column titles
        rows: Table cells; converted with str()

    Returns:
        The table, one line per row, with a dashed rule under the headers

    """
    cells = [[str(c) for c in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in cells:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(values: Sequence[str]) -> str:
        return "  ".join(v.ljust(w) for v, w in zip(values, widths)).rstrip()

    out = [line(headers), line(["-" * w for w in widths])]
    out.extend(line(row) for row in cells)
    return "\n".join(out)


def format_version_transition(current_version: str, new_version: str) -> str:
    return f"{current_version} -> {new_version}"


def print_json(data: Any) -> None:
    """Write data as indented JSON to stdout."""
    sys.stdout.write(
        orjson.dumps(data, option=orjson.OPT_INDENT_2).decode("utf-8") + "\n"
    )
    sys.stdout.flush()


def print_outdated_report(report: OutdatedReport) -> None:
    """Print one table per catalog that has outdated entries."""
    if not report.has_updates:
        print("All catalog dependencies are up to date")
        return

    for catalog in report.catalogs:
        if not catalog.outdated_dependencies:
            continue
        print(
            f"\nCatalog: {catalog.catalog_name} "
            f"({catalog.outdated_count}/{catalog.total_packages} outdated)"
        )
        rows = [
            (
                dep.package_name,
                dep.current_version,
                dep.wanted_version,
                dep.latest_version,
                dep.update_type,
                f"{dep.security_vulnerabilities} vuln"
                if dep.is_security_update
                else "",
            )
            for dep in catalog.outdated_dependencies
        ]
        print(
            format_table(
                ("Package", "Current", "Wanted", "Latest", "Type", "Security"),
                rows,
            )
        )
    print(f"\n{report.total_outdated} outdated dependencies")


def print_update_plan(plan: UpdatePlan) -> None:
    """Print planned updates and any version conflicts."""
    if not plan.updates:
        print("Nothing to update")
        return

    rows = [
        (
            update.catalog_name,
            update.package_name,
            format_version_transition(update.current_version, update.new_version),
            update.update_type,
            update.reason,
        )
        for update in plan.updates
    ]
    print(format_table(("Catalog", "Package", "Version", "Type", "Reason"), rows))

    for conflict in plan.conflicts:
        status = "resolved" if conflict.resolved else "UNRESOLVED"
        print(f"\nConflict ({status}): {conflict.package_name}")
        for entry in conflict.catalogs:
            print(
                f"  {entry.catalog_name}: "
                + format_version_transition(
                    entry.current_version, entry.proposed_version
                )
            )
        print(f"  {conflict.recommendation}")


def print_update_result(result: UpdateResult, *, dry_run: bool = False) -> None:
    """Print the outcome of applying a plan."""
    verb = "Would update" if dry_run else "Updated"
    for dep in result.updated_dependencies:
        print(
            f"{verb} {dep.catalog_name}:{dep.package_name} "
            + format_version_transition(dep.from_version, dep.to_version)
        )
    for skipped in result.skipped_dependencies:
        print(
            f"Skipped {skipped.catalog_name}:{skipped.package_name} "
            f"({skipped.reason})"
        )
    for error in result.errors:
        target = (
            f"{error.catalog_name}:{error.package_name} "
            if error.package_name
            else ""
        )
        print(f"Error {target}{error.error}")

    if result.backup_path is not None:
        print(f"Backup: {result.backup_path}")
    print(
        f"\n{result.total_updated} updated, {result.total_skipped} skipped, "
        f"{result.total_errors} errors"
    )


def print_security_report(
    report: OsvReport, safe_version: SafeVersionResult | None = None
) -> None:
    """Print vulnerabilities and, when known, the nearest safe version."""
    print(f"Security report for {report.package_name}@{report.version}")
    if report.vulnerabilities:
        rows = [
            (
                vuln.id,
                vuln.severity,
                vuln.cvss_score if vuln.cvss_score is not None else "",
                ", ".join(vuln.fixed_versions) or "-",
                vuln.summary,
            )
            for vuln in report.vulnerabilities
        ]
        print(format_table(("ID", "Severity", "CVSS", "Fixed in", "Summary"), rows))
    else:
        print("No known vulnerabilities")

    if safe_version is not None:
        scope = (
            "same minor"
            if safe_version.same_minor
            else "same major"
            if safe_version.same_major
            else "new major"
        )
        print(
            f"\nSafe version: {safe_version.version} ({scope}, "
            f"{safe_version.versions_checked} checked)"
        )


def print_backups(backups: Sequence[BackupInfo]) -> None:
    if not backups:
        print("No backups found")
        return
    rows = [(b.formatted_time, b.size, b.path.name) for b in backups]
    print(format_table(("Created (UTC)", "Bytes", "File"), rows))


def print_cache_stats(stats: dict[str, Any]) -> None:
    rows = [
        (key, f"{value:.2f}" if isinstance(value, float) else value)
        for key, value in stats.items()
    ]
    print(format_table(("Metric", "Value"), rows))
