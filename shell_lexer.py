# ============================================================================
# SHELL COMMAND LEXER
# ============================================================================
"""Syntax highlighting for single history entries.

History lines come from bash, zsh and fish, so the lexer covers the syntax they
share plus the few keywords that differ (fish's `begin`/`end`/`and`/`or`).
"""

from __future__ import annotations

import re

from pygments.lexer import RegexLexer, bygroups, include
from pygments.token import (
    Comment,
    Error,
    Generic,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Token,
)
from rich.style import Style
from rich.syntax import Syntax, SyntaxTheme

# Custom token types so Rich and Pygments know about them
Name.Argument = Token.Name.Argument
Name.Variable.Magic = Token.Name.Variable.Magic
Keyword.Type = Token.Keyword.Type

KEYWORDS = (
    "if fi else elif then for in while until do done case esac function select "
    "begin end switch and or not"
).split()

BUILTINS = (
    "echo printf cd pwd export unset readonly source exit return break continue "
    "alias unalias set type which eval exec test read history builtin command"
).split()


def _words(words: list[str]) -> str:
    return r"\b(" + "|".join(re.escape(w) for w in words) + r")\b"


class ShellLexer(RegexLexer):
    """
    A stateful lexer for interactive shell command lines.
    Use like so:
    ```python
    console = Console()
    console.print(highlight_command("git log --oneline | head -n 5"))
    ```
    """

    name = "Shell command"
    aliases = ["shellcmd"]
    filenames = [".bash_history", ".zsh_history", "fish_history"]

    flags = re.MULTILINE | re.DOTALL

    tokens = {
        "_expansions": [
            (r"\\.", String.Escape),
            # Arithmetic must be checked before command substitution
            (r"\$\(\(", Operator, "arithmetic_expansion"),
            (r"\$\(", String.Interpol, "command_substitution"),
            (r"`", String.Backtick, "backtick"),
            (r"\$\{", Name.Variable.Magic, "parameter_expansion"),
            (r"\$[a-zA-Z0-9_@*#?$!~-]+", Name.Variable),
            (r"'[^']*'", String.Single),
            (r'"', String.Double, "string_double"),
        ],
        "root": [
            (r"\s+", Text),
            (r"(?<![^\s;|&(])#.*?$", Comment.Single),
            (r"([a-zA-Z_][a-zA-Z0-9_]*)(=)", bygroups(Name.Variable, Operator)),
            (r"(<<<|<<-?|>>?|<&|>&|&>)?[0-9]*[<>]", Operator),
            (r"\|\|?|&&|&", Operator),
            (r"[;()\[\]{}]", Punctuation),
            (r"\b[0-9]+\b", Number.Integer),
            (_words(KEYWORDS), Keyword.Reserved),
            (_words(BUILTINS), Name.Builtin, "arguments"),
            include("_expansions"),
            (r"([a-zA-Z0-9_./~+-]+)", Name.Function, "arguments"),
        ],
        "arguments": [
            (r"\n", Text, "#pop"),
            (r"\|\|?|&&", Operator, "#pop"),
            (r"[;&]", Punctuation, "#pop"),
            (r"\s+", Text),
            (r"(?<=\s)#.*?$", Comment.Single),
            (r"(?:--?|\+)[a-zA-Z0-9][\w-]*", Name.Attribute),
            (r"(<<<|<<-?|>>?|<&|>&|&>)|[0-9]*[<>]", Operator),
            (r"=", Operator),
            (r"\b[0-9]+\b", Number.Integer),
            include("_expansions"),
            (r"[^=\s;&|(){}<>\[\]$'\"`\\]+", Name.Argument),
            # Closing paren ends the command inside $( ... )
            (r"(?=\))", Text, "#pop"),
            (r"[({}\[\]]", Punctuation),
        ],
        "string_double": [
            (r'"', String.Double, "#pop"),
            (r'\\(["$`\\])', String.Escape),
            include("_expansions"),
            (r'[^"\\$`]+', String.Double),
        ],
        "backtick": [
            (r"`", String.Backtick, "#pop"),
            (r"[^`]+", String.Backtick),
        ],
        "command_substitution": [
            (r"\)", String.Interpol, "#pop"),
            include("root"),
        ],
        "arithmetic_expansion": [
            (r"\)\)", Operator, "#pop"),
            (r"[-+*/%&|<>!=^]+", Operator.Word),
            (r"\b[0-9]+\b", Number.Integer),
            (r"[a-zA-Z_][a-zA-Z0-9_]*", Name.Variable),
            (r"\s+", Text),
            (r"[()]", Punctuation),
        ],
        "parameter_expansion": [
            (r"\}", Name.Variable.Magic, "#pop"),
            (r"\s+", Text),
            (r"\$\{", Name.Variable.Magic, "#push"),
            (r"\$\(", String.Interpol, "command_substitution"),
            # zsh parameter flags like ${(f)var}
            (
                r"(\([#@=a-zA-Z:?^]+\))([a-zA-Z_][a-zA-Z0-9_]*)",
                bygroups(Keyword.Type, Name.Variable),
            ),
            (r"[a-zA-Z_][a-zA-Z0-9_]*", Name.Variable),
            (r"[#%/:|~^]+", Operator),
            (r"[^}]+", Text),
        ],
    }


class MonokaiProTheme(SyntaxTheme):
    """Rich syntax-highlighting theme that matches Monokai Pro."""

    _BLACK = "#2d2a2e"
    _RED = "#ff6188"
    _GREEN = "#a9dc76"
    _YELLOW = "#ffd866"
    _ORANGE = "#fc9867"
    _PURPLE = "#ab9df2"
    _CYAN = "#78dce8"
    _WHITE = "#fcfcfa"
    _COMMENT_GRAY = "#727072"

    background_color = _BLACK
    default_style = Style(color=_WHITE)

    styles = {
        Name.Function: Style(color=_GREEN, bold=True),  # git, curl
        Name.Attribute: Style(color=_ORANGE),  # --long, -l
        Name.Argument: Style(color=_PURPLE),  # a filename
        Name.Variable.Magic: Style(color=_PURPLE),  # ${PATH}
        Name.Builtin: Style(color=_CYAN, italic=True),
        Number: Style(color=_CYAN),
        Keyword.Type: Style(color=_CYAN, italic=True),  # (f)
        Text: Style(color=_WHITE),
        Comment: Style(color=_COMMENT_GRAY, italic=True),
        Keyword: Style(color=_RED, bold=True),
        Operator: Style(color=_RED),
        Operator.Word: Style(color=_RED),
        Punctuation: Style(color=_WHITE),
        Name.Variable: Style(color=_WHITE),
        String: Style(color=_YELLOW),
        String.Escape: Style(color=_PURPLE),
        String.Interpol: Style(color=_PURPLE, bold=True),
        Error: Style(color=_RED, bold=True),
        Generic.Emph: Style(italic=True),
        Generic.Strong: Style(bold=True),
    }

    @classmethod
    def get_style_for_token(cls, t):
        # Walk up the token hierarchy so e.g. String.Single picks up String
        while t not in cls.styles and t.parent is not None:
            t = t.parent
        return cls.styles.get(t, cls.default_style)

    @classmethod
    def get_background_style(cls):
        return Style(bgcolor=cls._BLACK)


def highlight_command(command: str, background: bool = True) -> Syntax:
    """→ A Rich renderable for one history entry"""
    return Syntax(
        command,
        ShellLexer(),
        theme=MonokaiProTheme(),
        line_numbers=False,
        word_wrap=False,
        background_color=None if background else "default",
    )
