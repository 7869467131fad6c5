"""Tests for shell detection, line cleaning and per-shell history parsing."""

from pathlib import Path

import pytest

from histsource import (
    POWERSHELL_HISTORY,
    BashHistory,
    CmdHistory,
    FishHistory,
    HistoryEnvironment,
    PowerShellHistory,
    ShellKind,
    ZshHistory,
    clean_history_line,
    format_for,
    read_history_lines,
    read_shell_history,
)


def make_env(home, shell="/bin/bash", profile=None):
    return HistoryEnvironment(shell_path=shell, home_dir=home, profile_dir=profile)


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestCleanHistoryLine:
    def test_numbered_prefix_with_padding(self):
        assert clean_history_line(" 1747  nist -v") == "nist -v"

    def test_numbered_prefix_single_space(self):
        assert clean_history_line("1748 cargo run -- -v") == "cargo run -- -v"

    def test_pure_number_is_discarded(self):
        assert clean_history_line("123") == ""

    def test_number_with_trailing_whitespace_is_discarded(self):
        assert clean_history_line("  42   ") == ""

    def test_empty_and_whitespace(self):
        assert clean_history_line("") == ""
        assert clean_history_line("  ") == ""

    def test_clean_line_is_unchanged(self):
        assert clean_history_line("git status") == "git status"
        assert clean_history_line("  ls -la  ") == "ls -la"

    def test_cleaning_is_idempotent(self):
        once = clean_history_line(" 17  make test")
        assert clean_history_line(once) == once

    def test_digits_inside_command_are_kept(self):
        assert clean_history_line("head -n 10 file") == "head -n 10 file"

    def test_command_starting_with_digits_is_kept(self):
        assert clean_history_line("7z x a.7z") == "7z x a.7z"
        assert clean_history_line("2to3 foo.py") == "2to3 foo.py"
        assert clean_history_line(" 12  7z x a.7z") == "7z x a.7z"


class TestShellKind:
    @pytest.mark.parametrize(
        "path, kind",
        [
            ("/bin/bash", ShellKind.BASH),
            ("/bin/zsh/", ShellKind.ZSH),
            ("C:\\Windows\\System32\\cmd.exe\\", ShellKind.CMD),
            ("/usr/bin/zsh", ShellKind.ZSH),
            ("/usr/local/bin/fish", ShellKind.FISH),
            ("/usr/bin/pwsh", ShellKind.POWERSHELL),
            ("powershell", ShellKind.POWERSHELL),
            (r"C:\Windows\System32\WindowsPowerShell\v1.0\powershell.exe", ShellKind.POWERSHELL),
            (r"C:\Windows\System32\cmd.exe", ShellKind.CMD),
            ("cmd", ShellKind.CMD),
            ("/bin/tcsh", ShellKind.UNKNOWN),
            ("", ShellKind.UNKNOWN),
        ],
    )
    def test_from_shell_path(self, path, kind):
        assert ShellKind.from_shell_path(path) is kind

    def test_match_is_case_sensitive(self):
        assert ShellKind.from_shell_path("/bin/ZSH") is ShellKind.UNKNOWN

    def test_unknown_uses_bash_format(self):
        assert isinstance(format_for(ShellKind.UNKNOWN), BashHistory)
        assert isinstance(format_for(ShellKind.CMD), CmdHistory)


class TestHistoryEnvironment:
    def test_from_environ_posix(self):
        env = HistoryEnvironment.from_environ({"SHELL": "/bin/zsh", "HOME": "/home/u"}, windows=False)
        assert env.shell_path == "/bin/zsh"
        assert env.home_dir == Path("/home/u")
        assert env.profile_dir is None
        assert env.shell_kind is ShellKind.ZSH

    def test_defaults_posix(self):
        env = HistoryEnvironment.from_environ({}, windows=False)
        assert env.shell_path == "/bin/bash"
        assert env.home_dir is None

    def test_defaults_windows(self):
        env = HistoryEnvironment.from_environ({"USERPROFILE": r"C:\Users\u"}, windows=True)
        assert env.shell_path == "cmd.exe"
        assert env.shell_kind is ShellKind.CMD
        assert env.profile_dir == Path(r"C:\Users\u")

    def test_userprofile_ignored_off_windows(self):
        env = HistoryEnvironment.from_environ({"USERPROFILE": "/x"}, windows=False)
        assert env.profile_dir is None

    def test_empty_home_counts_as_missing(self):
        env = HistoryEnvironment.from_environ({"HOME": ""}, windows=False)
        assert env.home_dir is None


class TestBashHistory:
    def test_newest_first_with_cleaning(self, tmp_path):
        write(tmp_path / ".bash_history", "ls\n#1700000000\n 12  git status\n\n123\ncd /tmp\n")
        assert read_shell_history(10, make_env(tmp_path)) == ["cd /tmp", "git status", "ls"]

    def test_digit_leading_commands_survive(self, tmp_path):
        write(tmp_path / ".bash_history", "7z x a.7z\n2to3 -w script.py\n 12  ls\n")
        assert read_shell_history(10, make_env(tmp_path)) == ["ls", "2to3 -w script.py", "7z x a.7z"]

    def test_capped_to_max_entries(self, tmp_path):
        write(tmp_path / ".bash_history", "a\nb\nc\nd\n")
        assert read_shell_history(2, make_env(tmp_path)) == ["d", "c"]

    def test_duplicates_are_kept(self, tmp_path):
        write(tmp_path / ".bash_history", "ls\nls\n")
        assert read_shell_history(10, make_env(tmp_path)) == ["ls", "ls"]

    def test_unknown_shell_reads_bash_history(self, tmp_path):
        write(tmp_path / ".bash_history", "echo hi\n")
        assert read_shell_history(10, make_env(tmp_path, shell="/bin/tcsh")) == ["echo hi"]

    def test_undecodable_bytes_do_not_fail(self, tmp_path):
        (tmp_path / ".bash_history").write_bytes(b"ls \xff\xfe\necho ok\n")
        result = read_shell_history(10, make_env(tmp_path))
        assert result[0] == "echo ok"
        assert len(result) == 2


class TestZshHistory:
    def test_extended_history(self, tmp_path):
        write(
            tmp_path / ".zsh_history",
            ": 1700000000:0;ls -la\n"
            ": 1700000001:0;git status\n"
            ": 1700000002:3;echo a; echo b\n"
            "not extended\n"
            ": 1700000003:0;#comment\n"
            ": 1700000004:0;   \n",
        )
        env = make_env(tmp_path, shell="/usr/bin/zsh")
        assert read_shell_history(10, env) == ["echo a; echo b", "git status", "ls -la"]

    def test_parse_respects_cap(self):
        lines = [f": 170000000{i}:0;cmd{i}" for i in range(5)]
        assert ZshHistory().parse(lines, 2) == ["cmd4", "cmd3"]


class TestFishHistory:
    def test_cmd_lines_newest_first(self, tmp_path):
        write(
            tmp_path / ".local/share/fish/fish_history",
            "- cmd: ls\n"
            "  when: 1\n"
            '- cmd: "git status"\n'
            "  when: 2\n"
            "  paths:\n"
            "    - foo\n"
            "- cmd: echo a\\nb\n"
            "  when: 3\n",
        )
        env = make_env(tmp_path, shell="/usr/bin/fish")
        assert read_shell_history(10, env) == ["echo a\nb", "git status", "ls"]

    def test_escaped_backslash(self):
        assert FishHistory().parse([r"- cmd: echo C:\\temp"], 5) == [r"echo C:\temp"]

    def test_empty_cmd_discarded(self):
        assert FishHistory().parse(["- cmd:", '- cmd: ""', "- cmd: pwd"], 5) == ["pwd"]


class TestPowerShellHistory:
    def test_reads_under_home(self, tmp_path):
        write(tmp_path / POWERSHELL_HISTORY, "Get-ChildItem\nSet-Location ..\n")
        env = make_env(tmp_path, shell="/usr/bin/pwsh")
        assert read_shell_history(10, env) == ["Set-Location ..", "Get-ChildItem"]

    def test_profile_dir_preferred(self, tmp_path):
        home = tmp_path / "home"
        profile = tmp_path / "profile"
        write(home / POWERSHELL_HISTORY, "from-home\n")
        write(profile / POWERSHELL_HISTORY, "from-profile\n")
        env = make_env(home, shell="pwsh.exe", profile=profile)
        assert read_shell_history(10, env) == ["from-profile"]

    def test_byte_order_mark_stripped(self, tmp_path):
        write(tmp_path / POWERSHELL_HISTORY, "\ufeffGet-Process\n")
        env = make_env(tmp_path, shell="powershell")
        assert read_shell_history(10, env) == ["Get-Process"]

    def test_locate_without_any_home(self):
        assert PowerShellHistory().locate(make_env(None, shell="pwsh")) is None


class TestCmdHistory:
    def test_always_empty(self, tmp_path):
        write(tmp_path / ".bash_history", "dir\n")
        assert read_shell_history(10, make_env(tmp_path, shell="cmd.exe")) == []


class TestDegradesToEmpty:
    SHELLS = ["/bin/bash", "/bin/zsh", "/usr/bin/fish", "/usr/bin/pwsh", "cmd.exe", "/bin/sh"]

    @pytest.mark.parametrize("shell", SHELLS)
    def test_missing_home(self, shell):
        assert read_shell_history(10, make_env(None, shell=shell)) == []

    @pytest.mark.parametrize("shell", SHELLS)
    def test_missing_file(self, tmp_path, shell):
        assert read_shell_history(10, make_env(tmp_path, shell=shell)) == []

    def test_empty_file(self, tmp_path):
        write(tmp_path / ".bash_history", "")
        assert read_shell_history(10, make_env(tmp_path)) == []

    def test_only_comments(self, tmp_path):
        write(tmp_path / ".bash_history", "# one\n#1700000000\n")
        assert read_shell_history(10, make_env(tmp_path)) == []

    def test_history_path_is_a_directory(self, tmp_path):
        (tmp_path / ".zsh_history").mkdir()
        assert read_shell_history(10, make_env(tmp_path, shell="zsh")) == []

    def test_read_history_lines_missing(self, tmp_path):
        assert read_history_lines(tmp_path / "nope") is None

    @pytest.mark.parametrize("max_entries", [-1, 0, 1, 3, 50])
    def test_length_never_exceeds_max(self, tmp_path, max_entries):
        write(tmp_path / ".bash_history", "\n".join(f"cmd{i}" for i in range(20)) + "\n")
        result = read_shell_history(max_entries, make_env(tmp_path))
        assert len(result) <= max(max_entries, 0)

    def test_process_environment_does_not_raise(self):
        assert isinstance(read_shell_history(5), list)
