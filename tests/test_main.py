"""Tests for the click CLI, driven through CliRunner."""

import json
import os
import tempfile

import pytest
from click.testing import CliRunner

from cgar.main import cli


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch):
    # basicConfig(force=True) would replace pytest's capture handlers
    monkeypatch.setattr("cgar.main.setup_logging", lambda **kwargs: None)


def _setup(tmp: str, **extra) -> str:
    cgroot = os.path.join(tmp, "cgroup")
    os.makedirs(os.path.join(cgroot, "a", "b"))
    with open(os.path.join(cgroot, "a", "memory.current"), "w") as f:
        f.write("100\n")
    with open(os.path.join(cgroot, "a", "b", "memory.current"), "w") as f:
        f.write("50\n")

    config = {
        "logfile": os.path.join(tmp, "cgar.log"),
        "cgroup_root": cgroot,
        "collect": [{"cgroup": "a", "depth": 1, "controllers": ["memory"]}],
    }
    config.update(extra)
    path = os.path.join(tmp, "conf.json")
    with open(path, "w") as f:
        json.dump(config, f)
    return path


def test_collect_appends_snapshot():
    with tempfile.TemporaryDirectory() as tmp:
        conf = _setup(tmp)
        runner = CliRunner()

        assert runner.invoke(cli, ["--no-syslog", "collect", conf]).exit_code == 0
        assert runner.invoke(cli, ["--no-syslog", "collect", conf]).exit_code == 0

        with open(os.path.join(tmp, "cgar.log")) as f:
            lines = f.read().splitlines()

    assert len(lines) == 2
    record = json.loads(lines[0])
    (nodes,) = record.values()
    assert nodes == {"a": {"memory.current": "100"}, "a/b": {"memory.current": "50"}}


def test_collect_to_stdout_and_database():
    with tempfile.TemporaryDirectory() as tmp:
        db = os.path.join(tmp, "hist.db")
        conf = _setup(tmp)
        runner = CliRunner()

        result = runner.invoke(cli, ["--no-syslog", "collect", conf, "--stdout", "--db", db])
        assert result.exit_code == 0, result.output
        (nodes,) = json.loads(result.output.strip().splitlines()[-1]).values()
        assert nodes["a/b"] == {"memory.current": "50"}

        result = runner.invoke(cli, ["--no-syslog", "history", "a/b", "memory.current", "--db", db])
        assert result.exit_code == 0
        assert "50" in result.output


def test_collect_mock_tree():
    with tempfile.TemporaryDirectory() as tmp:
        conf = _setup(tmp, collect=[{"cgroup": "system.slice", "depth": 1, "controllers": ["memory"]}])
        result = CliRunner().invoke(cli, ["--no-syslog", "collect", conf, "--mock", "--stdout"])

    assert result.exit_code == 0, result.output
    (nodes,) = json.loads(result.output.strip().splitlines()[-1]).values()
    assert "system.slice/cron.service" in nodes


def test_bad_config_exits_with_status_2():
    with tempfile.TemporaryDirectory() as tmp:
        result = CliRunner().invoke(cli, ["--no-syslog", "collect", os.path.join(tmp, "missing.json")])
    assert result.exit_code == 2


def test_show_renders_latest_snapshot():
    with tempfile.TemporaryDirectory() as tmp:
        conf = _setup(tmp)
        runner = CliRunner()
        runner.invoke(cli, ["--no-syslog", "collect", conf])

        result = runner.invoke(cli, ["--no-syslog", "show", conf, "--node", "a/b"])

    assert result.exit_code == 0, result.output
    assert "50" in result.output
    assert "2 cgroups" in result.output


def test_show_without_log_file():
    with tempfile.TemporaryDirectory() as tmp:
        conf = _setup(tmp)
        result = CliRunner().invoke(cli, ["--no-syslog", "show", conf])
    assert result.exit_code == 1


def test_bare_config_argument_runs_collect():
    with tempfile.TemporaryDirectory() as tmp:
        conf = _setup(tmp)
        result = CliRunner().invoke(cli, ["--no-syslog", conf])

        assert result.exit_code == 0, result.output
        with open(os.path.join(tmp, "cgar.log")) as f:
            (record,) = [json.loads(line) for line in f]

    (nodes,) = record.values()
    assert nodes["a"] == {"memory.current": "100"}


def test_history_lists_values_across_runs():
    with tempfile.TemporaryDirectory() as tmp:
        db = os.path.join(tmp, "hist.db")
        conf = _setup(tmp, database=db)
        runner = CliRunner()
        runner.invoke(cli, ["--no-syslog", "collect", conf])
        runner.invoke(cli, ["--no-syslog", "collect", conf])

        result = runner.invoke(cli, ["--no-syslog", "history", "/a/", "memory.current", "--db", db])
        assert result.exit_code == 0, result.output
        assert result.output.count("100") == 2

        result = runner.invoke(cli, ["--no-syslog", "history", "a", "memory.max", "--db", db])
        assert result.exit_code == 0
        assert "No history" in result.output


def test_history_does_not_create_missing_database():
    with tempfile.TemporaryDirectory() as tmp:
        db = os.path.join(tmp, "typo.db")
        result = CliRunner().invoke(cli, ["--no-syslog", "history", "a", "memory.current", "--db", db])

        assert result.exit_code == 1
        assert not os.path.exists(db)
