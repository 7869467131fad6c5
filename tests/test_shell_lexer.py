from pygments.token import Comment, Error, Keyword, Name, Operator, String
from rich.console import Console
from rich.syntax import Syntax

from shell_lexer import MonokaiProTheme, ShellLexer, highlight_command


def lex(command):
    return [(tok, val) for tok, val in ShellLexer().get_tokens(command) if val.strip()]


class TestShellLexer:
    def test_command_arguments_and_options(self):
        assert lex("git commit -m 'msg'") == [
            (Name.Function, "git"),
            (Name.Argument, "commit"),
            (Name.Attribute, "-m"),
            (String.Single, "'msg'"),
        ]

    def test_builtin_and_variable(self):
        assert lex("echo $HOME") == [(Name.Builtin, "echo"), (Name.Variable, "$HOME")]

    def test_pipe_starts_a_new_command(self):
        tokens = lex("cat file | grep foo")
        assert (Operator, "|") in tokens
        assert (Name.Function, "grep") in tokens

    def test_trailing_comment(self):
        assert lex("ls -la # list")[-1] == (Comment.Single, "# list")

    def test_keyword(self):
        assert lex("for f in *; do echo $f; done")[0] == (Keyword.Reserved, "for")

    def test_command_substitution_closes(self):
        tokens = lex("echo $(date +%s) done")
        assert (String.Interpol, "$(") in tokens
        assert (String.Interpol, ")") in tokens

    def test_no_errors_on_history_like_input(self):
        for cmd in ["nist -v", "cargo run -- -v", "a=1 b=2 env", "echo \"$(pwd)\"", "x > out 2>&1"]:
            assert not [v for t, v in lex(cmd) if t in Error]


class TestHighlightCommand:
    def test_returns_syntax(self):
        assert isinstance(highlight_command("ls"), Syntax)

    def test_renders(self):
        console = Console(record=True, width=60, color_system=None)
        console.print(highlight_command("git status", background=False))
        assert "git status" in console.export_text()

    def test_theme_falls_back_to_parent_token(self):
        assert MonokaiProTheme.get_style_for_token(String.Double) == MonokaiProTheme.styles[String]
