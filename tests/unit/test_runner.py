"""Unit tests for command runners."""

import subprocess
from unittest.mock import Mock, patch

import pytest
import requests

from colimalab.exceptions import CommandError, ConnectivityError
from colimalab.runner import SSH_OPTIONS, CommandResult, LocalRunner, RecordingRunner, SSHRunner


def _completed(returncode=0, stdout=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout)


@patch("colimalab.runner.subprocess.run")
def test_local_runner_returns_trimmed_combined_output(mock_run):
    mock_run.return_value = _completed(0, "  Ready\n")

    result = LocalRunner().run(["kubectl", "get", "nodes"])

    assert result.ok
    assert result.output == "Ready"
    call_kwargs = mock_run.call_args[1]
    assert call_kwargs["stderr"] == subprocess.STDOUT
    assert call_kwargs["check"] is False


@patch("colimalab.runner.subprocess.run")
def test_local_runner_raises_on_failure_when_checked(mock_run):
    mock_run.return_value = _completed(1, "Error: formula not found")

    with pytest.raises(CommandError) as exc_info:
        LocalRunner().run(["brew", "install", "colima"])

    assert exc_info.value.returncode == 1
    assert "formula not found" in exc_info.value.output
    assert "brew install colima" in exc_info.value.message


@patch("colimalab.runner.subprocess.run")
def test_local_runner_best_effort_returns_failure(mock_run):
    mock_run.return_value = _completed(1, "colima is not running")

    result = LocalRunner().run(["colima", "stop"], check=False)

    assert not result.ok
    assert result.output == "colima is not running"


@patch("colimalab.runner.subprocess.run", side_effect=FileNotFoundError)
def test_local_runner_missing_binary(mock_run):
    result = LocalRunner().run(["k3d", "cluster", "list"], check=False)
    assert result.returncode == 127

    with pytest.raises(CommandError):
        LocalRunner().run(["k3d", "cluster", "list"])


@patch(
    "colimalab.runner.subprocess.run",
    side_effect=subprocess.TimeoutExpired(cmd="ssh", timeout=30),
)
def test_local_runner_timeout(mock_run):
    result = LocalRunner().run(["ssh", "nas"], check=False, timeout=30)
    assert result.returncode == 124


@patch("colimalab.runner.subprocess.run")
def test_run_shell_uses_bash(mock_run):
    mock_run.return_value = _completed(0, "mounted")

    LocalRunner().run_shell("mount | grep docker")

    assert mock_run.call_args[0][0] == ["bash", "-c", "mount | grep docker"]


def test_command_result_command_is_shell_quoted():
    result = CommandResult(args=["colima", "ssh", "--", "echo hi"], returncode=0)
    assert result.command == "colima ssh -- 'echo hi'"


def test_ssh_runner_wraps_commands():
    transport = RecordingRunner("local")
    runner = SSHRunner("nas.local", "root", transport=transport)

    runner.run(["exportfs", "-ra"])

    expected = " ".join(["ssh", *SSH_OPTIONS, "root@nas.local", "'exportfs -ra'"])
    assert transport.commands == [expected]
    assert runner.label == "root@nas.local"


def test_ssh_runner_check_connection_failure():
    transport = RecordingRunner("local").respond(
        "ssh", "Permission denied (publickey)", returncode=255
    )
    runner = SSHRunner("nas.local", "root", transport=transport)

    with pytest.raises(ConnectivityError) as exc_info:
        runner.check_connection()

    assert "root@nas.local" in exc_info.value.message
    assert "Permission denied" in exc_info.value.details


def test_ssh_runner_command_exists():
    transport = RecordingRunner("local").respond("ssh", "", returncode=1)
    assert not SSHRunner("nas.local", "root", transport=transport).command_exists("exportfs")


def test_ssh_runner_has_no_local_filesystem():
    runner = SSHRunner("nas.local", "root", transport=RecordingRunner())
    with pytest.raises(NotImplementedError):
        runner.make_dirs("/mnt/user")


def test_recording_runner_defaults_to_empty_success():
    runner = RecordingRunner()

    result = runner.run(["ollama", "list"])

    assert result.ok
    assert result.output == ""
    assert runner.commands == ["ollama list"]


def test_recording_runner_later_responses_win():
    runner = RecordingRunner()
    runner.respond("k3d", "first")
    runner.respond("k3d cluster list", "second")

    assert runner.run(["k3d", "cluster", "list"]).output == "second"
    assert runner.run(["k3d", "version"]).output == "first"


def test_recording_runner_shared_journal():
    journal = []
    local = RecordingRunner("local", journal)
    remote = RecordingRunner("root@nas", journal)

    remote.run_shell("echo ok")
    local.run(["mount"])

    assert [str(c) for c in journal] == ["[root@nas] echo ok", "[local] mount"]
    assert local.commands == ["mount"]
    assert remote.called("echo")


def test_recording_runner_filesystem():
    runner = RecordingRunner()
    runner.make_dirs("/Users/me/.colima")

    assert runner.path_exists("/Users/me/.colima")
    assert runner.backup_dir("/Users/me/.colima")
    assert runner.path_exists("/Users/me/.colima.bak")
    assert not runner.backup_dir("/Users/me/.colima")


def test_local_runner_backup_dir_replaces_previous_backup(tmp_path):
    state = tmp_path / ".colima"
    state.mkdir()
    (state / "colima.yaml").write_text("cpu: 4")
    old_backup = tmp_path / ".colima.bak"
    old_backup.mkdir()
    (old_backup / "stale").write_text("old")

    assert LocalRunner().backup_dir(state)

    assert not state.exists()
    assert (old_backup / "colima.yaml").read_text() == "cpu: 4"
    assert not (old_backup / "stale").exists()


def test_local_runner_backup_dir_missing(tmp_path):
    assert not LocalRunner().backup_dir(tmp_path / ".colima")


def test_local_runner_make_and_remove(tmp_path):
    runner = LocalRunner()
    target = tmp_path / "Volumes" / "docker-data"

    runner.make_dirs(target)
    assert runner.path_exists(target)

    runner.remove_tree(tmp_path / "Volumes")
    assert not runner.path_exists(target)


@patch("colimalab.runner.requests.get")
def test_local_runner_http_get(mock_get):
    response = Mock()
    response.text = '{"models":[]}'
    mock_get.return_value = response

    assert LocalRunner().http_get("http://localhost:11434/api/tags") == '{"models":[]}'


@patch("colimalab.runner.requests.get", side_effect=requests.ConnectionError("refused"))
def test_local_runner_http_get_failure(mock_get):
    assert LocalRunner().http_get("http://localhost:11434/api/tags") is None
