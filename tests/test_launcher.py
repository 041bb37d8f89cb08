"""Tests for command building and detached launching.

Run with: python -m pytest tests/test_launcher.py -v
"""

import subprocess
from pathlib import Path
from unittest.mock import patch

from jogger.applications.desktop_entry import ApplicationAction, ApplicationRecord, TerminalArgs
from jogger.applications.launcher import build_command, launch, wrap_in_terminal


def _app(**kwargs):
    kwargs.setdefault("identity", "app")
    kwargs.setdefault("name", "App")
    return ApplicationRecord(**kwargs)


class TestBuildCommand:
    """Record (+ action) -> argv."""

    def test_main_command(self):
        assert build_command(_app(command="foo --new-window")) == ["foo", "--new-window"]

    def test_quoted_arguments(self):
        assert build_command(_app(command='sh -c "echo hi"')) == ["sh", "-c", "echo hi"]

    def test_action_command(self):
        action = ApplicationAction(key="bar", name="Bar", command="foo --bar")
        record = _app(command="foo", actions={"bar": action})
        assert build_command(record, "bar") == ["foo", "--bar"]

    def test_unknown_action(self):
        assert build_command(_app(command="foo"), "nope") is None

    def test_inert_action(self):
        action = ApplicationAction(key="ghost", name="Ghost")
        assert build_command(_app(command="foo", actions={"ghost": action}), "ghost") is None

    def test_no_command(self):
        assert build_command(_app()) is None

    def test_terminal_app_without_emulator(self):
        assert build_command(_app(command="htop", terminal=True)) is None

    def test_terminal_app_wrapped(self):
        emulator = _app(identity="xterm", command="xterm", categories=("TerminalEmulator",))
        assert build_command(_app(command="htop", terminal=True), terminal_emulator=emulator) == [
            "xterm", "-e", "htop"
        ]


class TestWrapInTerminal:
    """Emulator-specific command lines."""

    def test_published_exec_and_hold(self):
        emulator = _app(
            identity="kitty",
            command="kitty",
            terminal_args=TerminalArgs(exec="--", hold="--hold"),
        )
        assert wrap_in_terminal(["htop"], emulator) == ["kitty", "--hold", "--", "htop"]

    def test_gnome_terminal(self):
        emulator = _app(identity="org.gnome.Terminal", command="/usr/bin/gnome-terminal")
        assert wrap_in_terminal(["htop", "-d", "5"], emulator) == [
            "/usr/bin/gnome-terminal", "--", "htop", "-d", "5"
        ]

    def test_emulator_without_command(self):
        assert wrap_in_terminal(["htop"], _app(identity="broken")) is None


class TestLaunch:
    """Spawning detached processes."""

    def test_spawns_detached(self, tmp_path):
        record = _app(command="foo --bar", working_directory=tmp_path)
        with patch("jogger.applications.launcher.subprocess.Popen") as popen:
            assert launch(record) is True

        args, kwargs = popen.call_args
        assert args[0] == ["foo", "--bar"]
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["start_new_session"] is True
        assert kwargs["stdin"] == subprocess.DEVNULL

    def test_missing_working_directory_ignored(self, tmp_path):
        record = _app(command="foo", working_directory=Path(tmp_path / "gone"))
        with patch("jogger.applications.launcher.subprocess.Popen") as popen:
            assert launch(record) is True
        assert popen.call_args[1]["cwd"] is None

    def test_spawn_failure(self):
        record = _app(command="does-not-exist")
        with patch("jogger.applications.launcher.subprocess.Popen", side_effect=FileNotFoundError("nope")):
            assert launch(record) is False

    def test_nothing_to_run(self):
        with patch("jogger.applications.launcher.subprocess.Popen") as popen:
            assert launch(_app()) is False
        popen.assert_not_called()

    def test_terminal_without_emulator(self):
        with patch("jogger.applications.launcher.subprocess.Popen") as popen:
            assert launch(_app(command="htop", terminal=True)) is False
        popen.assert_not_called()
