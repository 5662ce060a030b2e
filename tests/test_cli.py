"""CLI tests for reftracker -- every command via Click's CliRunner.

Each test uses runner.isolated_filesystem() with a file-backed database
since every CLI invocation opens its own store.
"""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from reftracker.cli import EXIT_CONFLICT, cli
from reftracker.exceptions import ConflictError

DB = "rt.db"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    """Create a Click test runner."""
    return CliRunner()


def _invoke(runner: CliRunner, *args: str, **kwargs):
    return runner.invoke(cli, ["--db", DB, *args], obj={}, **kwargs)


def _setup_pool(runner: CliRunner, name: str = "vols") -> None:
    result = _invoke(runner, "pool", "create", name)
    assert result.exit_code == 0, result.output


# ---------------------------------------------------------------------------
# pool
# ---------------------------------------------------------------------------

class TestPool:
    def test_create_and_list(self, runner):
        with runner.isolated_filesystem():
            result = _invoke(runner, "pool", "create", "vols")
            assert result.exit_code == 0
            assert "Created pool vols." in result.output

            result = _invoke(runner, "pool", "ls")
            assert result.exit_code == 0
            assert "vols" in result.output

    def test_list_empty(self, runner):
        with runner.isolated_filesystem():
            result = _invoke(runner, "pool", "ls")
            assert result.exit_code == 0
            assert "No pools." in result.output

    def test_create_twice_fails(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            result = _invoke(runner, "pool", "create", "vols")
            assert result.exit_code == 1
            assert "already exists" in result.output

    def test_rm(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            _invoke(runner, "add", "-p", "vols", "-k", "a", "snap")
            result = _invoke(runner, "pool", "rm", "vols", "--yes")
            assert result.exit_code == 0
            assert "Deleted pool vols." in result.output
            assert "No pools." in _invoke(runner, "pool", "ls").output


# ---------------------------------------------------------------------------
# add / rem
# ---------------------------------------------------------------------------

class TestAdd:
    def test_first_add_creates(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            result = _invoke(runner, "add", "-p", "vols", "-k", "a,b", "snap")
            assert result.exit_code == 0, result.output
            assert "Created tracker snap with 2 key(s)." in result.output

    def test_add_new_keys(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            _invoke(runner, "add", "-p", "vols", "-k", "a", "snap")
            result = _invoke(runner, "add", "-p", "vols", "-k", "a,b", "snap")
            assert result.exit_code == 0
            assert "Added 1 key(s) to snap: b" in result.output

    def test_add_is_idempotent(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            _invoke(runner, "add", "-p", "vols", "-k", "a,b", "snap")
            result = _invoke(runner, "add", "-p", "vols", "-k", "b,a", "snap")
            assert result.exit_code == 0
            assert "No keys added to snap; all already tracked." in result.output

    def test_pool_from_env(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            result = _invoke(
                runner, "add", "-k", "a", "snap", env={"REFTRACKER_POOL": "vols"}
            )
            assert result.exit_code == 0, result.output
            assert "Created tracker snap" in result.output

    def test_unknown_pool(self, runner):
        with runner.isolated_filesystem():
            result = _invoke(runner, "add", "-p", "nope", "-k", "a", "snap")
            assert result.exit_code == 1
            assert "Pool not found: nope" in result.output

    def test_empty_key_rejected(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            result = _invoke(runner, "add", "-p", "vols", "-k", "a,,b", "snap")
            assert result.exit_code == 2
            assert result.exit_code != EXIT_CONFLICT
            assert "keys may not be empty" in result.output

    def test_conflict_exit_code(self, runner, monkeypatch):
        def lose_race(store, pool, name, keys):
            raise ConflictError(pool, name)

        monkeypatch.setattr("reftracker.operations.rt_add", lose_race)
        with runner.isolated_filesystem():
            _setup_pool(runner)
            result = _invoke(runner, "add", "-p", "vols", "-k", "a", "snap")
            assert result.exit_code == EXIT_CONFLICT
            assert "changed since it was last read" in result.output

    def test_retries_exhausted_exit_code(self, runner, monkeypatch):
        calls = []

        def lose_race(store, pool, name, keys):
            calls.append(name)
            raise ConflictError(pool, name)

        monkeypatch.setattr("reftracker.operations.rt_add", lose_race)
        with runner.isolated_filesystem():
            _setup_pool(runner)
            result = _invoke(
                runner, "add", "-p", "vols", "-k", "a", "--retries", "2", "snap"
            )
            assert result.exit_code == EXIT_CONFLICT
            assert "All 3 retry attempts failed" in result.output
            assert len(calls) == 3


class TestRemove:
    def test_remove_some(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            _invoke(runner, "add", "-p", "vols", "-k", "a,b", "snap")
            result = _invoke(runner, "rem", "-p", "vols", "-k", "a", "snap")
            assert result.exit_code == 0, result.output
            assert "Removed 1 key(s) from snap: a" in result.output

    def test_remove_last_key_deletes(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            _invoke(runner, "add", "-p", "vols", "-k", "a", "snap")
            result = _invoke(runner, "remove", "-p", "vols", "-k", "a", "snap")
            assert result.exit_code == 0
            assert "Deleted tracker snap; it holds no references." in result.output
            assert "No trackers." in _invoke(runner, "ls", "-p", "vols").output

    def test_remove_untracked(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            _invoke(runner, "add", "-p", "vols", "-k", "a", "snap")
            result = _invoke(runner, "rem", "-p", "vols", "-k", "x", "snap")
            assert result.exit_code == 0
            assert "No keys removed from snap; none tracked." in result.output

    def test_remove_missing_tracker(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            result = _invoke(runner, "rem", "-p", "vols", "-k", "a", "ghost")
            assert result.exit_code == 0
            assert "Tracker ghost does not exist; nothing to remove." in result.output


# ---------------------------------------------------------------------------
# stat / ls
# ---------------------------------------------------------------------------

class TestStat:
    def test_stat(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            _invoke(runner, "add", "-p", "vols", "-k", "vol-a,vol-b", "snap")
            result = _invoke(runner, "stat", "-p", "vols", "snap")
            assert result.exit_code == 0, result.output
            assert "vols/snap" in result.output
            assert "Version:  1" in result.output
            assert "Refcount: 2" in result.output
            assert "vol-a" in result.output
            assert "vol-b" in result.output

    def test_stat_missing(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            result = _invoke(runner, "stat", "-p", "vols", "ghost")
            assert result.exit_code == 1
            assert "Reference tracker not found" in result.output


class TestLs:
    def test_ls(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            _invoke(runner, "add", "-p", "vols", "-k", "a", "one")
            _invoke(runner, "add", "-p", "vols", "-k", "a", "two")
            result = _invoke(runner, "ls", "-p", "vols")
            assert result.exit_code == 0
            lines = result.output.split()
            assert lines == ["one", "two"]

    def test_ls_empty(self, runner):
        with runner.isolated_filesystem():
            _setup_pool(runner)
            result = _invoke(runner, "ls", "-p", "vols")
            assert result.exit_code == 0
            assert "No trackers." in result.output
