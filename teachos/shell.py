"""Command-line parser for the shell: builds a command tree from one input line."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union

MAXARGS = 10

WHITESPACE = " \t\r\n\v"
SYMBOLS = "<|>&;()"


class ShellSyntaxError(ValueError):
    """The command line cannot be parsed."""


class OpenMode(enum.IntFlag):
    """Flags passed to open()."""

    RDONLY = 0x000
    WRONLY = 0x001
    RDWR = 0x002
    CREATE = 0x200


@dataclass(frozen=True)
class ExecCommand:
    """Run a program with arguments; argv[0] names the program."""

    argv: tuple[str, ...] = ()


@dataclass(frozen=True)
class RedirCommand:
    """Run cmd with descriptor fd replaced by file opened with mode."""

    cmd: Command
    file: str
    mode: OpenMode
    fd: int


@dataclass(frozen=True)
class PipeCommand:
    """Connect the output of left to the input of right."""

    left: Command
    right: Command


@dataclass(frozen=True)
class ListCommand:
    """Run left, wait for it, then run right."""

    left: Command
    right: Command


@dataclass(frozen=True)
class BackCommand:
    """Run cmd without waiting for it."""

    cmd: Command


Command = Union[ExecCommand, RedirCommand, PipeCommand, ListCommand, BackCommand]

_Redirection = tuple[str, OpenMode, int]

_END = ""
_WORD = "a"
_APPEND = "+"


class _Parser:
    def __init__(self, line: str) -> None:
        self.text = line
        self.pos = 0
        self.end = len(line)

    def _skip_space(self) -> None:
        while self.pos < self.end and self.text[self.pos] in WHITESPACE:
            self.pos += 1

    def peek(self, toks: str) -> bool:
        self._skip_space()
        return self.pos < self.end and self.text[self.pos] in toks

    def token(self) -> tuple[str, str]:
        """Consume one token; return its kind and its text."""
        self._skip_space()
        start = self.pos
        if self.pos >= self.end:
            kind = _END
        else:
            ch = self.text[self.pos]
            if ch in "|();&<":
                self.pos += 1
                kind = ch
            elif ch == ">":
                self.pos += 1
                kind = ">"
                if self.pos < self.end and self.text[self.pos] == ">":
                    self.pos += 1
                    kind = _APPEND
            else:
                kind = _WORD
                while (
                    self.pos < self.end
                    and self.text[self.pos] not in WHITESPACE
                    and self.text[self.pos] not in SYMBOLS
                ):
                    self.pos += 1
        word = self.text[start:self.pos]
        self._skip_space()
        return kind, word

    def parse(self) -> Command:
        cmd = self.parse_line()
        self.peek("")
        if self.pos != self.end:
            raise ShellSyntaxError(f"leftovers: {self.text[self.pos:]}")
        return cmd

    def parse_line(self) -> Command:
        cmd = self.parse_pipe()
        while self.peek("&"):
            self.token()
            cmd = BackCommand(cmd)
        if self.peek(";"):
            self.token()
            cmd = ListCommand(cmd, self.parse_line())
        return cmd

    def parse_pipe(self) -> Command:
        cmd = self.parse_exec()
        if self.peek("|"):
            self.token()
            cmd = PipeCommand(cmd, self.parse_pipe())
        return cmd

    def collect_redirs(self) -> list[_Redirection]:
        redirs: list[_Redirection] = []
        while self.peek("<>"):
            kind, _ = self.token()
            file_kind, file = self.token()
            if file_kind != _WORD:
                raise ShellSyntaxError("missing file for redirection")
            if kind == "<":
                redirs.append((file, OpenMode.RDONLY, 0))
            else:
                redirs.append((file, OpenMode.WRONLY | OpenMode.CREATE, 1))
        return redirs

    @staticmethod
    def wrap(cmd: Command, redirs: list[_Redirection]) -> Command:
        for file, mode, fd in redirs:
            cmd = RedirCommand(cmd, file, mode, fd)
        return cmd

    def parse_block(self) -> Command:
        if not self.peek("("):
            raise ShellSyntaxError("parseblock")
        self.token()
        cmd = self.parse_line()
        if not self.peek(")"):
            raise ShellSyntaxError("syntax - missing )")
        self.token()
        return self.wrap(cmd, self.collect_redirs())

    def parse_exec(self) -> Command:
        if self.peek("("):
            return self.parse_block()
        argv: list[str] = []
        redirs = self.collect_redirs()
        while not self.peek("|)&;"):
            kind, word = self.token()
            if kind == _END:
                break
            if kind != _WORD:
                raise ShellSyntaxError("syntax")
            argv.append(word)
            if len(argv) >= MAXARGS:
                raise ShellSyntaxError("too many args")
            redirs.extend(self.collect_redirs())
        return self.wrap(ExecCommand(tuple(argv)), redirs)


def parse_command(line: str) -> Command:
    """Parse one shell line into a command tree."""
    line = line.split("\0", 1)[0]
    return _Parser(line).parse()