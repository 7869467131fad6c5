"""
histsource.py - Shell history discovery and normalization

Finds the interactive shell's history file and turns it into a list of plain
command strings, newest first.

Design
- Every shell format is an object that knows where its history lives and how to
  read it (`HistoryFormat` subclasses). Picking a format happens once, from the
  shell path, via `ShellKind`.
- Environment inputs are explicit: `HistoryEnvironment` holds the shell path and
  home directories, so callers (and tests) never have to touch `os.environ`.
- Reading is total. A missing home, a missing or unreadable file, or garbage
  lines all produce fewer (possibly zero) entries, never an exception.

Formats
- bash / unknown   ~/.bash_history                 "<cmd>" or " 1747  <cmd>"
- zsh              ~/.zsh_history                  ": <epoch>:<duration>;<cmd>"
- fish             ~/.local/share/fish/fish_history "- cmd: <cmd>"
- PowerShell       <profile>/AppData/.../ConsoleHost_history.txt
- cmd.exe          none
"""

from __future__ import annotations

import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping

log = logging.getLogger(__name__)

# ============================================================================
# CONFIGURATION & CONSTANTS
# ============================================================================

BASH_HISTORY = Path(".bash_history")
ZSH_HISTORY = Path(".zsh_history")
FISH_HISTORY = Path(".local/share/fish/fish_history")
POWERSHELL_HISTORY = Path(
    "AppData/Roaming/Microsoft/Windows/PowerShell/PSReadline/ConsoleHost_history.txt"
)

FISH_CMD_PREFIX = "- cmd:"
SHELL_PATH_SEP_RE = re.compile(r"[\\/]")
LEADING_DIGITS_RE = re.compile(r"^[0-9]+(?:\s+|$)")


class ShellKind(Enum):
    """Classification of the user's interactive shell."""

    BASH = "bash"
    ZSH = "zsh"
    FISH = "fish"
    POWERSHELL = "powershell"
    CMD = "cmd"
    UNKNOWN = "unknown"

    @classmethod
    def from_shell_path(cls, shell_path: str) -> ShellKind:
        """→ Classify by the final path segment; the match is case-sensitive"""
        name = SHELL_PATH_SEP_RE.split(shell_path.rstrip("/\\"))[-1]
        return _SHELL_NAMES.get(name, cls.UNKNOWN)


_SHELL_NAMES: dict[str, ShellKind] = {
    "bash": ShellKind.BASH,
    "zsh": ShellKind.ZSH,
    "fish": ShellKind.FISH,
    "powershell": ShellKind.POWERSHELL,
    "powershell.exe": ShellKind.POWERSHELL,
    "pwsh": ShellKind.POWERSHELL,
    "pwsh.exe": ShellKind.POWERSHELL,
    "cmd": ShellKind.CMD,
    "cmd.exe": ShellKind.CMD,
}


@dataclass(frozen=True)
class HistoryEnvironment:
    """The environment inputs the reader depends on.

    `profile_dir` is only consulted for PowerShell, and only when set (it is
    populated from USERPROFILE on Windows).
    """

    shell_path: str
    home_dir: Path | None
    profile_dir: Path | None = None

    @property
    def shell_kind(self) -> ShellKind:
        return ShellKind.from_shell_path(self.shell_path)

    @classmethod
    def from_environ(
        cls, environ: Mapping[str, str] | None = None, windows: bool | None = None
    ) -> HistoryEnvironment:
        """→ Build from process environment variables (SHELL, HOME, USERPROFILE)"""
        if environ is None:
            environ = os.environ
        if windows is None:
            windows = os.name == "nt"

        shell_path = environ.get("SHELL") or ("cmd.exe" if windows else "/bin/bash")
        home = environ.get("HOME")
        profile = environ.get("USERPROFILE") if windows else None
        return cls(
            shell_path=shell_path,
            home_dir=Path(home) if home else None,
            profile_dir=Path(profile) if profile else None,
        )


# ============================================================================
# PARSING & UTILITIES
# ============================================================================


def clean_history_line(line: str) -> str:
    """Strip a numeric history-index prefix from a history line.

    >>> clean_history_line(" 1747  nist -v")
    'nist -v'
    >>> clean_history_line("123")
    ''

    Lines that do not start with a digit come back trimmed and otherwise
    unchanged, as do commands that merely begin with digits ("7z x a.7z").
    A line that is nothing but digits yields "".
    """
    line = line.strip()
    m = LEADING_DIGITS_RE.match(line)
    if not m:
        return line
    return line[m.end():]


def is_command(text: str) -> bool:
    """→ A usable command entry is non-empty and not a comment"""
    return bool(text) and not text.startswith("#")


def read_history_lines(path: Path) -> list[str] | None:
    """→ File I/O: Reads a history file into lines, None if it cannot be read"""
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        log.debug("history file not found: %s", path)
        return None
    except (OSError, ValueError) as e:
        log.debug("cannot read history file %s: %s", path, e)
        return None
    return text.removeprefix("\ufeff").splitlines()


def _unescape_fish(value: str) -> str:
    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        if nxt == "n":
            out.append("\n")
        elif nxt == "\\":
            out.append("\\")
        else:
            out.append(ch + nxt)
    return "".join(out)


# ============================================================================
# HISTORY FORMATS
# ============================================================================


class HistoryFormat(ABC):
    """One shell's history: where it lives and how to turn its lines into commands."""

    kind: ShellKind

    @abstractmethod
    def locate(self, env: HistoryEnvironment) -> Path | None:
        """Returns the history file path, or None if it cannot be determined."""
        raise NotImplementedError

    @abstractmethod
    def parse(self, lines: list[str], max_entries: int) -> list[str]:
        """Returns at most `max_entries` commands, newest first."""
        raise NotImplementedError

    def read(self, env: HistoryEnvironment, max_entries: int) -> list[str]:
        if max_entries <= 0:
            return []
        path = self.locate(env)
        if path is None:
            log.debug("%s: no home directory, no history", self.kind.value)
            return []
        lines = read_history_lines(path)
        if lines is None:
            return []
        entries = self.parse(lines, max_entries)
        log.debug("%s: read %d entries from %s", self.kind.value, len(entries), path)
        return entries


class BashHistory(HistoryFormat):
    """Plain one-command-per-line history, optionally with index prefixes."""

    kind = ShellKind.BASH
    relative_path = BASH_HISTORY

    def locate(self, env: HistoryEnvironment) -> Path | None:
        if env.home_dir is None:
            return None
        return env.home_dir / self.relative_path

    def parse(self, lines: list[str], max_entries: int) -> list[str]:
        entries: list[str] = []
        for line in reversed(lines):
            if len(entries) >= max_entries:
                break
            line = line.strip()
            # HISTTIMEFORMAT timestamps ("#1700000000") are comments too
            if not is_command(line):
                continue
            command = clean_history_line(line)
            if is_command(command):
                entries.append(command)
        return entries


class ZshHistory(HistoryFormat):
    """EXTENDED_HISTORY lines: ": <epoch>:<duration>;<command>"."""

    kind = ShellKind.ZSH

    def locate(self, env: HistoryEnvironment) -> Path | None:
        if env.home_dir is None:
            return None
        return env.home_dir / ZSH_HISTORY

    def parse(self, lines: list[str], max_entries: int) -> list[str]:
        entries: list[str] = []
        for line in reversed(lines):
            if len(entries) >= max_entries:
                break
            _, sep, command = line.partition(";")
            if not sep:
                continue
            command = command.strip()
            if is_command(command):
                entries.append(command)
        return entries


class FishHistory(HistoryFormat):
    """fish's YAML-ish history; only the `- cmd:` lines matter.

    fish appends new items at the end of the file, so lines are walked from the
    bottom up like every other format.
    """

    kind = ShellKind.FISH

    def locate(self, env: HistoryEnvironment) -> Path | None:
        if env.home_dir is None:
            return None
        return env.home_dir / FISH_HISTORY

    def parse(self, lines: list[str], max_entries: int) -> list[str]:
        entries: list[str] = []
        for line in reversed(lines):
            if len(entries) >= max_entries:
                break
            if not line.startswith(FISH_CMD_PREFIX):
                continue
            command = line[len(FISH_CMD_PREFIX):].strip().strip('"')
            command = _unescape_fish(command)
            if is_command(command):
                entries.append(command)
        return entries


class PowerShellHistory(BashHistory):
    """PSReadLine's ConsoleHost_history.txt, same line rules as bash."""

    kind = ShellKind.POWERSHELL
    relative_path = POWERSHELL_HISTORY

    def locate(self, env: HistoryEnvironment) -> Path | None:
        base = env.profile_dir or env.home_dir
        if base is None:
            return None
        return base / self.relative_path


class CmdHistory(HistoryFormat):
    """cmd.exe keeps no history on disk."""

    kind = ShellKind.CMD

    def locate(self, env: HistoryEnvironment) -> Path | None:
        return None

    def parse(self, lines: list[str], max_entries: int) -> list[str]:
        return []

    def read(self, env: HistoryEnvironment, max_entries: int) -> list[str]:
        return []


_FORMATS: dict[ShellKind, HistoryFormat] = {
    ShellKind.BASH: BashHistory(),
    ShellKind.ZSH: ZshHistory(),
    ShellKind.FISH: FishHistory(),
    ShellKind.POWERSHELL: PowerShellHistory(),
    ShellKind.CMD: CmdHistory(),
}


def format_for(kind: ShellKind) -> HistoryFormat:
    """→ Format object for a shell kind; unknown shells read bash history"""
    return _FORMATS.get(kind, _FORMATS[ShellKind.BASH])


# ============================================================================
# ENTRY POINT
# ============================================================================


def read_shell_history(max_entries: int, env: HistoryEnvironment | None = None) -> list[str]:
    """Return up to `max_entries` commands from the user's shell history, newest first.

    Never raises: an empty list means no history is available.
    """
    if env is None:
        env = HistoryEnvironment.from_environ()
    kind = env.shell_kind
    log.debug("shell %r detected as %s", env.shell_path, kind.value)
    return format_for(kind).read(env, max(max_entries, 0))
