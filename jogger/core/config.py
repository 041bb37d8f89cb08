"""
Configuration module for Jogger.
Centralizes all settings with environment variable overrides, plus the
XDG base-directory lookups every loader shares.
"""
import os
from pathlib import Path
from typing import List, Mapping, Optional


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


# ============================================================================
# XDG base directories
# ============================================================================

def _absolute_dirs(value: str) -> List[Path]:
    """Split a colon-separated path list, keeping only absolute entries."""
    return [Path(p) for p in value.split(":") if p and os.path.isabs(p)]


def _home(environ: Mapping[str, str]) -> Path:
    return Path(environ.get("HOME") or Path.home())


def config_home(environ: Optional[Mapping[str, str]] = None) -> Path:
    """$XDG_CONFIG_HOME, defaulting to ~/.config"""
    environ = os.environ if environ is None else environ
    value = environ.get("XDG_CONFIG_HOME", "")
    if value and os.path.isabs(value):
        return Path(value)
    return _home(environ) / ".config"


def config_dirs(environ: Optional[Mapping[str, str]] = None) -> List[Path]:
    """$XDG_CONFIG_DIRS in listed order, defaulting to /etc/xdg"""
    environ = os.environ if environ is None else environ
    return _absolute_dirs(environ.get("XDG_CONFIG_DIRS", "")) or [Path("/etc/xdg")]


def data_home(environ: Optional[Mapping[str, str]] = None) -> Path:
    """$XDG_DATA_HOME, defaulting to ~/.local/share"""
    environ = os.environ if environ is None else environ
    value = environ.get("XDG_DATA_HOME", "")
    if value and os.path.isabs(value):
        return Path(value)
    return _home(environ) / ".local" / "share"


def data_dirs(environ: Optional[Mapping[str, str]] = None) -> List[Path]:
    """$XDG_DATA_DIRS in listed order, defaulting to /usr/local/share:/usr/share"""
    environ = os.environ if environ is None else environ
    return _absolute_dirs(environ.get("XDG_DATA_DIRS", "")) or [
        Path("/usr/local/share"),
        Path("/usr/share"),
    ]


def application_dirs(environ: Optional[Mapping[str, str]] = None) -> List[Path]:
    """
    Directories searched for application-description files, highest
    precedence first.
    """
    return [d / "applications" for d in [data_home(environ), *data_dirs(environ)]]


def mimeapps_dirs(environ: Optional[Mapping[str, str]] = None) -> List[Path]:
    """
    Directories that may hold a mimeapps.list, in precedence order:
    user config > system config > user data applications > system data applications.
    """
    return [config_home(environ), *config_dirs(environ), *application_dirs(environ)]


def mime_dirs(environ: Optional[Mapping[str, str]] = None) -> List[Path]:
    """shared-mime-info database directories, highest precedence first."""
    return [d / "mime" for d in [data_home(environ), *data_dirs(environ)]]


class Config:
    """Central configuration for Jogger"""

    APP_NAME: str = "jogger"

    # Search
    MAX_RESULTS: int = int(os.environ.get("JOGGER_MAX_RESULTS", "20"))
    NO_DISPLAY_SENTINEL: str = "<none>"
    MISSING_ICON: str = "image-missing"

    # Logging
    LOG_LEVEL: str = os.environ.get("JOGGER_LOG_LEVEL", "INFO")

    # Quiet Mode - hides per-file scan chatter
    QUIET_MODE: bool = _env_flag("JOGGER_QUIET_MODE")

    # Per-user state files
    CONFIG_DIR: Path = Path(os.environ.get("JOGGER_CONFIG_DIR") or (config_home() / "jogger"))
    IGNORED_FILE_NAME: str = "ignored.conf"
    USAGE_FILE_NAME: str = "usage.json"

    # Association files
    MIMEAPPS_FILE_NAME: str = "mimeapps.list"

    # Terminal wrapping
    DEFAULT_TERMINAL_EXEC_ARG: str = "-e"
    TERMINAL_SCHEME: str = "x-scheme-handler/terminal"

    # Emit a default handler at most once even when several sources declare it
    DEDUPE_DEFAULT_HANDLERS: bool = _env_flag("JOGGER_DEDUPE_DEFAULT_HANDLERS")

    @classmethod
    def get_ignored_file(cls) -> Path:
        """Path of the ignore-list file (one identity/action-key per line)"""
        return cls.CONFIG_DIR / cls.IGNORED_FILE_NAME

    @classmethod
    def get_usage_file(cls) -> Path:
        """Path of the persisted usage-count store"""
        return cls.CONFIG_DIR / cls.USAGE_FILE_NAME
