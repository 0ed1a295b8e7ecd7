"""Tests for the CLI surface — one-shot dispatch, list, actions."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from procdiag.cli.context import ProcdiagContext
from procdiag.cli.main import (
    EXIT_BAD_TARGET,
    EXIT_DISPATCH_FAILED,
    EXIT_NO_PROCESS_TABLE,
    _app,
)

from tests.conftest import FakeProcessSource

runner = CliRunner()


@pytest.fixture(autouse=True)
def context(fake_source):
    ProcdiagContext._instance = ProcdiagContext(source=fake_source)
    yield ProcdiagContext._instance
    ProcdiagContext._instance = None


def test_actions_command():
    result = runner.invoke(_app, ["actions"])
    assert result.exit_code == 0
    for name in ("jstack", "jmap", "pstack", "get_be_vars"):
        assert name in result.output


def test_actions_for_category():
    result = runner.invoke(_app, ["actions", "--category", "jvm"])
    assert result.exit_code == 0
    assert "jstack" in result.output
    assert "pstack" not in result.output


def test_list_command():
    result = runner.invoke(_app, ["list", "--category", "jvm"])
    assert result.exit_code == 0
    assert "4821" in result.output
    assert "nginx" not in result.output


def test_list_fails_without_process_table():
    ProcdiagContext._instance = ProcdiagContext(source=FakeProcessSource(broken=True))
    result = runner.invoke(_app, ["list"])
    assert result.exit_code == EXIT_NO_PROCESS_TABLE


def test_one_shot_env_dump():
    result = runner.invoke(_app, ["--pid", "977", "--action", "get_be_vars"])
    assert result.exit_code == 0
    assert "get_be_vars" in result.output
    assert "exit 0" in result.output


def test_one_shot_env_dump_with_grep(context):
    context.source.environ[977] = b"SECRET_TOKEN=abc\0PATH=/bin\0"
    result = runner.invoke(_app, ["--pid", "977", "--action", "get_be_vars", "--grep", "path"])
    assert result.exit_code == 0
    assert "/bin" in result.output
    assert "SECRET_TOKEN" not in result.output
    assert "abc" not in result.output


def test_one_shot_env_grep_without_match_prints_nothing_secret(context):
    context.source.environ[977] = b"SECRET_TOKEN=abc\0PATH=/bin\0"
    result = runner.invoke(_app, ["--pid", "977", "--action", "get_be_vars", "--grep", "nomatch"])
    assert result.exit_code == 0
    assert "SECRET_TOKEN" not in result.output
    assert "/bin" not in result.output
    assert "No environment keys contain 'nomatch'" in result.output


def test_one_shot_unknown_pid():
    result = runner.invoke(_app, ["--pid", "31337", "--action", "jstack"])
    assert result.exit_code == EXIT_BAD_TARGET


def test_one_shot_action_for_wrong_category():
    result = runner.invoke(_app, ["--pid", "977", "--action", "jstack"])
    assert result.exit_code == EXIT_BAD_TARGET
    assert "pstack" in result.output


def test_one_shot_requires_both_flags():
    result = runner.invoke(_app, ["--pid", "977"])
    assert result.exit_code == EXIT_BAD_TARGET


def test_one_shot_dispatch_failure(context):
    context.source.env_denied.add(977)
    result = runner.invoke(_app, ["--pid", "977", "--action", "get_be_vars"])
    assert result.exit_code == EXIT_DISPATCH_FAILED
    assert "Dispatch failed" in result.output


def test_interactive_quit():
    result = runner.invoke(_app, [], input="q\n")
    assert result.exit_code == 0
    assert "Bye" in result.output


def test_interactive_startup_failure():
    ProcdiagContext._instance = ProcdiagContext(source=FakeProcessSource(broken=True))
    result = runner.invoke(_app, [])
    assert result.exit_code == EXIT_NO_PROCESS_TABLE
    assert "Cannot enumerate processes" in result.output


def test_version():
    result = runner.invoke(_app, ["version"])
    assert result.exit_code == 0
    assert "procdiag v" in result.output
