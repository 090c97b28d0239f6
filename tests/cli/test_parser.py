"""Tests for the pcu argument parser."""

from pathlib import Path

import pytest

from catalog_updater.cli.parser import CLIParser


@pytest.fixture
def parser():
    return CLIParser()


def test_check_defaults(parser):
    args = parser.parse_args(["check"])
    assert args.command == "check"
    assert args.workspace == Path.cwd()
    assert args.include == []
    assert not args.no_security
    assert not args.json


def test_update_flags(parser):
    args = parser.parse_args(
        [
            "update",
            "--workspace", "/tmp/ws",
            "--catalog", "react17",
            "--target", "minor",
            "--include", "react*",
            "--include", "vue",
            "--exclude", "legacy-*",
            "--dry-run",
            "--force",
            "--backup",
        ]
    )
    assert args.workspace == Path("/tmp/ws")
    assert args.catalog == "react17"
    assert args.target == "minor"
    assert args.include == ["react*", "vue"]
    assert args.exclude == ["legacy-*"]
    assert args.dry_run and args.force and args.backup


def test_invalid_target_rejected(parser):
    with pytest.raises(SystemExit):
        parser.parse_args(["check", "--target", "sometimes"])


def test_security_positionals(parser):
    args = parser.parse_args(["security", "lodash", "4.17.20", "--safe"])
    assert (args.name, args.version) == ("lodash", "4.17.20")
    assert args.safe
    assert not args.ecosystem
    assert not args.summary


@pytest.mark.parametrize(
    ("argv", "expected"),
    [(["cache"], None), (["cache", "--clear"], "all"),
     (["cache", "--clear", "versions"], "versions")],
)
def test_cache_clear(parser, argv, expected):
    assert parser.parse_args(argv).clear == expected


def test_no_command(parser):
    args = parser.parse_args([])
    assert args.command is None
    assert not args.version
