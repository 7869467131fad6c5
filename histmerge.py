#!/usr/bin/env python3
"""
Merge shell history with the terminal's in-session history and emit the union.

Sources
- Shell history: read from the detected shell's history file (see histsource),
  newest first. `--shell` and `--home` override SHELL and HOME.
- Session history: commands typed in this terminal session, oldest first, from
  `--session FILE` (one per line) and/or repeated `--command` flags.

Behavior
- Lays shell history out chronologically, appends the session commands, and
  deduplicates by exact command text.
- By default the first occurrence on that timeline wins; `--keep-latest` keeps
  each command at its most recent position instead.
- Writes the merged commands newest first to stdout, at most `--max` of them.
- Prints per-source counts to stderr so stdout can be piped on its own.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from histsource import HistoryEnvironment, read_shell_history

log = logging.getLogger(__name__)

MAX_COMMAND_HISTORY = 5
DEFAULT_MAX_ROWS = 50

CUSTOM_THEME = Theme({
    "info": "#61AFEF",
    "success": "#98C379",
    "warning": "#E5C07B",
    "error": "#E06C75",
    "context": "#5C6370",
})

console = Console(stderr=True, theme=CUSTOM_THEME)


# ============================================================================
# MERGING
# ============================================================================


def combine_and_deduplicate(
    shell_history: Sequence[str],
    terminal_history: Sequence[str],
    max_rows: int,
    keep_latest: bool = False,
) -> list[str]:
    """Merge two histories into one deduplicated list, newest first.

    `shell_history` is treated as older than `terminal_history`; together they
    form one timeline, oldest to newest. Each distinct command appears once.

    With the default `keep_latest=False` a repeated command stays at its first
    position on the timeline:

    >>> combine_and_deduplicate(["cmd1", "cmd2", "cmd3"], ["cmd3", "cmd4", "cmd2"], 10)
    ['cmd4', 'cmd3', 'cmd2', 'cmd1']

    With `keep_latest=True` it moves to its most recent position instead.
    """
    if max_rows <= 0:
        return []

    timeline = [*shell_history, *terminal_history]
    seen: set[str] = set()
    merged: list[str] = []

    if keep_latest:
        for cmd in reversed(timeline):
            if cmd not in seen:
                seen.add(cmd)
                merged.append(cmd)
    else:
        for cmd in timeline:
            if cmd not in seen:
                seen.add(cmd)
                merged.append(cmd)
        merged.reverse()

    return merged[:max_rows]


class SessionHistory:
    """Commands entered in this terminal session, oldest first."""

    def __init__(self, max_size: int = MAX_COMMAND_HISTORY):
        self._history: list[str] = []
        self._max_size = max_size

    def add(self, cmd: str):
        """Add a command. Skip blank commands and an immediate repeat."""
        if not cmd.strip():
            return
        if self._history and self._history[-1] == cmd:
            return
        self._history.append(cmd)
        if len(self._history) > self._max_size:
            self._history = self._history[len(self._history) - self._max_size :]

    def replace(self, commands: Iterable[str]):
        """Replace the contents wholesale, keeping the newest `max_size`."""
        history = list(commands)
        self._history = history[max(len(history) - self._max_size, 0) :]

    def clear(self):
        self._history = []

    @property
    def entries(self) -> list[str]:
        return list(self._history)

    def __len__(self) -> int:
        return len(self._history)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._history))


@dataclass
class MergeStats:
    shell: int
    session: int
    merged: int

    @property
    def dropped(self) -> int:
        return self.shell + self.session - self.merged


def load_merged_history(
    max_rows: int,
    session: Iterable[str] = (),
    env: HistoryEnvironment | None = None,
    max_entries: int | None = None,
    keep_latest: bool = False,
) -> tuple[list[str], MergeStats]:
    """→ Pipeline: read shell history, merge with session commands, newest first

    `max_entries` bounds the shell read and defaults to `max_rows`.
    """
    if max_entries is None:
        max_entries = max_rows
    shell_newest_first = read_shell_history(max_entries, env)
    session_cmds = list(session)
    # The reader returns newest first; the merge wants a timeline
    shell_timeline = list(reversed(shell_newest_first))
    merged = combine_and_deduplicate(shell_timeline, session_cmds, max_rows, keep_latest)
    log.debug(
        "merged %d shell + %d session commands into %d", len(shell_timeline), len(session_cmds), len(merged)
    )
    return merged, MergeStats(len(shell_timeline), len(session_cmds), len(merged))


# ============================================================================
# COMMAND LINE
# ============================================================================


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def read_session_file(path: Path) -> list[str]:
    """→ File I/O: session commands, one per line, blank lines skipped"""
    with path.open("r", encoding="utf-8", errors="replace") as f:
        return [line.rstrip("\n") for line in f if line.strip()]


def build_parser(description: str) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description=description)
    ap.add_argument("-n", "--max", type=int, default=DEFAULT_MAX_ROWS, dest="max_rows",
                    help=f"Maximum number of commands to emit (default {DEFAULT_MAX_ROWS})")
    ap.add_argument("--shell", help="Shell executable path (overrides $SHELL)")
    ap.add_argument("--home", type=Path, help="Home directory (overrides $HOME)")
    ap.add_argument("--session", type=Path,
                    help="File of in-session commands, oldest first; passed to the merge as-is")
    ap.add_argument("-c", "--command", action="append", default=[], dest="commands",
                    help="In-session command, oldest first (repeatable)")
    ap.add_argument("--keep-latest", action="store_true",
                    help="Keep each command at its most recent position")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    return ap


def environment_from_args(args: argparse.Namespace) -> HistoryEnvironment:
    env = HistoryEnvironment.from_environ()
    if args.shell or args.home:
        env = HistoryEnvironment(
            shell_path=args.shell or env.shell_path,
            home_dir=args.home or env.home_dir,
            profile_dir=args.home or env.profile_dir,
        )
    return env


def session_from_args(args: argparse.Namespace) -> list[str] | None:
    """→ Session commands from --session and --command; None if the file is unreadable"""
    commands: list[str] = []
    if args.session:
        try:
            commands.extend(read_session_file(args.session))
        except OSError as e:
            console.print(f"[error]Error reading session file '{args.session}': {e}[/error]")
            return None
    commands.extend(cmd for cmd in args.commands if cmd.strip())
    return commands


def main(argv: list[str]) -> int:
    ap = build_parser("Merge shell history with in-session commands; emit union to stdout; stats to stderr")
    args = ap.parse_args(argv)
    setup_logging(args.verbose)

    env = environment_from_args(args)
    session = session_from_args(args)
    if session is None:
        return 2

    merged, stats = load_merged_history(
        args.max_rows, session, env, keep_latest=args.keep_latest
    )

    console.print(f"shell=[info]{env.shell_kind.value}[/info] entries={stats.shell}", highlight=False)
    console.print(f"session entries={stats.session}", highlight=False)
    console.print(
        f"merged=[success]{stats.merged}[/success] dropped={stats.dropped}",
        highlight=False,
    )

    out = sys.stdout
    try:
        for cmd in merged:
            out.write(cmd + "\n")
        out.flush()
    except BrokenPipeError:
        # Downstream consumer closed early (e.g., piped to `head`). Exit cleanly.
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, out.fileno())
        return 0
    return 0


def cli() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
