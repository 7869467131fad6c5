#!/usr/bin/env python3
"""
histpick.py - Interactive picker over the merged command history

Loads the same merged list `histmerge` prints (shell history plus in-session
commands, newest first) and lets you narrow it down by typing. The chosen
command is written to stdout so a shell widget can insert or run it.

Keys
- type      filter (case-insensitive substring)
- up/down   move the selection; wraps within the visible rows
- enter     print the selected command and exit
- escape    exit without choosing (status 1)
"""

from __future__ import annotations

import sys
from typing import Sequence

from rich.table import Table
from rich.text import Text as RichText
from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, Input, Static

from histmerge import (
    build_parser,
    console,
    environment_from_args,
    load_merged_history,
    session_from_args,
    setup_logging,
)
from shell_lexer import highlight_command

DEFAULT_VISIBLE_ROWS = 10


class HistoryFilter:
    """A list of commands narrowed by a case-insensitive substring query."""

    def __init__(self, rows: Sequence[str], max_items: int = DEFAULT_VISIBLE_ROWS):
        self.rows = list(rows)
        self.max_items = max_items
        self.query = ""
        self.matches: list[str] = []
        self.match_indices: list[int] = []
        self.selected_index: int | None = None
        self.set_query("")

    def set_query(self, text: str):
        """Recompute matches; selection goes back to the first match."""
        self.query = text
        needle = text.lower()
        self.matches = []
        self.match_indices = []
        for i, row in enumerate(self.rows):
            if not needle or needle in row.lower():
                self.matches.append(row)
                self.match_indices.append(i)
        self.selected_index = 0 if self.matches else None

    @property
    def visible(self) -> list[str]:
        return self.matches[: max(self.max_items, 0)]

    def move_up(self):
        count = len(self.visible)
        if count == 0:
            return
        if self.selected_index is None or self.selected_index == 0:
            self.selected_index = count - 1
        else:
            self.selected_index -= 1

    def move_down(self):
        count = len(self.visible)
        if count == 0:
            return
        if self.selected_index is None or self.selected_index >= count - 1:
            self.selected_index = 0
        else:
            self.selected_index += 1

    @property
    def selected(self) -> str | None:
        if self.selected_index is None or self.selected_index >= len(self.visible):
            return None
        return self.matches[self.selected_index]

    @property
    def source_index(self) -> int | None:
        """Index of the selected command in the unfiltered rows."""
        if self.selected is None:
            return None
        return self.match_indices[self.selected_index]


class HistoryPickerApp(App[str | None]):
    CSS = """
    #filter {
        margin: 1 2 0 2;
        border: round $primary;
    }
    #filter:focus {
        border: round #FF4500;
    }
    #rows {
        margin: 0 2;
        padding: 0 1;
        height: auto;
    }
    #count {
        margin: 0 3;
        color: #5C6370;
    }
    """

    BINDINGS = [
        Binding("up", "move_up", "Previous", priority=True),
        Binding("down", "move_down", "Next", priority=True),
        Binding("escape", "cancel", "Cancel", priority=True),
    ]

    def __init__(self, rows: Sequence[str], max_items: int = DEFAULT_VISIBLE_ROWS, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.history_filter = HistoryFilter(rows, max_items)

    def compose(self) -> ComposeResult:
        yield Header()
        yield Input(placeholder="Filter history", id="filter")
        yield Static(id="rows")
        yield Static(id="count")
        yield Footer()

    def on_mount(self):
        self.query_one("#filter", Input).focus()
        self.refresh_rows()

    def render_rows(self) -> Table | RichText:
        hf = self.history_filter
        if not hf.visible:
            return RichText("No matching commands", style="italic #5C6370")

        table = Table.grid(padding=(0, 1))
        table.add_column(width=1)
        table.add_column()
        for i, cmd in enumerate(hf.visible):
            if i == hf.selected_index:
                table.add_row(RichText("›", style="bold #FF4500"), highlight_command(cmd, background=False))
            else:
                table.add_row("", RichText(cmd, style="#5C6370"))
        return table

    def refresh_rows(self):
        hf = self.history_filter
        self.query_one("#rows", Static).update(self.render_rows())
        self.query_one("#count", Static).update(f"{len(hf.matches)}/{len(hf.rows)}")

    @on(Input.Changed, "#filter")
    def handle_filter_changed(self, event: Input.Changed):
        self.history_filter.set_query(event.value)
        self.refresh_rows()

    @on(Input.Submitted, "#filter")
    def handle_filter_submitted(self, event: Input.Submitted):
        self.exit(self.history_filter.selected)

    def action_move_up(self):
        self.history_filter.move_up()
        self.refresh_rows()

    def action_move_down(self):
        self.history_filter.move_down()
        self.refresh_rows()

    def action_cancel(self):
        self.exit(None)


def main(argv: list[str]) -> int:
    ap = build_parser("Pick a command from the merged shell and session history")
    ap.add_argument("--rows", type=int, default=DEFAULT_VISIBLE_ROWS,
                    help=f"Visible rows in the picker (default {DEFAULT_VISIBLE_ROWS})")
    args = ap.parse_args(argv)
    setup_logging(args.verbose)

    session = session_from_args(args)
    if session is None:
        return 2

    merged, _ = load_merged_history(
        args.max_rows, session, environment_from_args(args), keep_latest=args.keep_latest
    )
    if not merged:
        console.print("[warning]No history available.[/warning]")
        return 1

    choice = HistoryPickerApp(merged, args.rows).run()
    if choice is None:
        return 1
    print(choice)
    return 0


def cli() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
