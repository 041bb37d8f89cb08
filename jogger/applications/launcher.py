"""
Launching applications and their sub-actions as detached processes.

Commands never receive file arguments: field codes were removed when the
record was loaded. Terminal applications are wrapped in a terminal emulator.
"""
import os
import subprocess
from typing import List, Optional

from jogger.applications.desktop_entry import ApplicationRecord
from jogger.core.config import Config


def _terminal_exec_arg(emulator: ApplicationRecord) -> str:
    if emulator.terminal_args.exec:
        return emulator.terminal_args.exec
    # gnome-terminal does not support -e properly
    if os.path.basename(emulator.program()) == "gnome-terminal":
        return "--"
    return Config.DEFAULT_TERMINAL_EXEC_ARG


def wrap_in_terminal(argv: List[str], emulator: ApplicationRecord) -> Optional[List[str]]:
    """Prefix ``argv`` with the emulator's command line, or None if it has none."""
    program = emulator.program()
    if not program:
        return None
    command = [program]
    if emulator.terminal_args.hold:
        command.append(emulator.terminal_args.hold)
    command.append(_terminal_exec_arg(emulator))
    command.extend(argv)
    return command


def build_command(
    record: ApplicationRecord,
    action: Optional[str] = None,
    terminal_emulator: Optional[ApplicationRecord] = None,
) -> Optional[List[str]]:
    """
    Command line that launches ``record`` (or one of its actions).

    Returns:
        argv list, or None when there is nothing to run: unknown or inert
        action, empty command, or a terminal app without an emulator
    """
    if action is not None:
        sub_action = record.actions.get(action)
        if sub_action is None or sub_action.inert:
            return None
        argv = sub_action.argv()
    else:
        argv = record.argv()

    if not argv:
        return None

    if record.terminal:
        if terminal_emulator is None:
            return None
        return wrap_in_terminal(argv, terminal_emulator)
    return argv


def launch(
    record: ApplicationRecord,
    action: Optional[str] = None,
    terminal_emulator: Optional[ApplicationRecord] = None,
) -> bool:
    """
    Start ``record`` detached from this process.

    Args:
        record: Application to start
        action: Key of a sub-action to run instead of the main command
        terminal_emulator: Emulator record for Terminal=true applications

    Returns:
        True if the process was spawned
    """
    from jogger.core.logger import get_logger
    logger = get_logger()

    command = build_command(record, action, terminal_emulator)
    if command is None:
        if record.terminal and terminal_emulator is None:
            logger.warning(f"[LAUNCH] No terminal emulator available for {record.identity}")
        else:
            logger.warning(f"[LAUNCH] Nothing to run for {record.identity}" + (f"/{action}" if action else ""))
        return False

    cwd = None
    if record.working_directory is not None and record.working_directory.is_dir():
        cwd = str(record.working_directory)

    try:
        subprocess.Popen(
            command,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
            close_fds=True,
        )
    except OSError as e:
        logger.error(f"[LAUNCH] Failed to start {command}: {e}")
        return False

    logger.info(f"[LAUNCH] Started {record.identity}" + (f"/{action}" if action else ""))
    return True
