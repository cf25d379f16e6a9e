"""System-call numbers, argument fetching from user memory, and dispatch."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, TextIO, Union

_UINT = 0xFFFFFFFF


class SyscallNumber(enum.IntEnum):
    """Numbers user code places in %eax to name a system call."""

    FORK = 1
    EXIT = 2
    WAIT = 3
    PIPE = 4
    READ = 5
    KILL = 6
    EXEC = 7
    FSTAT = 8
    CHDIR = 9
    DUP = 10
    GETPID = 11
    SBRK = 12
    SLEEP = 13
    UPTIME = 14
    OPEN = 15
    WRITE = 16
    MKNOD = 17
    UNLINK = 18
    LINK = 19
    MKDIR = 20
    CLOSE = 21
    GET_NUM_PROC = 22
    GET_MAX_PID = 23
    GET_PROC_INFO = 24


class BadAddress(Exception):
    """A user pointer or argument lies outside the process's memory."""


@dataclass
class UserContext:
    """The calling process: its user memory, saved stack pointer, pid and name."""

    memory: Union[bytes, bytearray] = field(default_factory=bytearray)
    esp: int = 0
    pid: int = 1
    name: str = ""

    @property
    def sz(self) -> int:
        return len(self.memory)

    def fetch_int(self, addr: int) -> int:
        """The signed 32-bit integer at user address addr."""
        addr &= _UINT
        if addr >= self.sz or addr + 4 > self.sz:
            raise BadAddress(f"int at {addr:#x} is outside the process")
        return int.from_bytes(self.memory[addr:addr + 4], "little", signed=True)

    def fetch_str(self, addr: int) -> bytes:
        """The NUL-terminated string at user address addr, without the NUL."""
        addr &= _UINT
        if addr >= self.sz:
            raise BadAddress(f"string at {addr:#x} is outside the process")
        end = self.memory.find(b"\0", addr)
        if end < 0:
            raise BadAddress(f"string at {addr:#x} is not terminated")
        return bytes(self.memory[addr:end])

    def arg_int(self, n: int) -> int:
        """The nth 32-bit argument of the system call."""
        return self.fetch_int(self.esp + 4 + 4 * n)

    def arg_ptr(self, n: int, size: int) -> int:
        """The nth argument as the address of size bytes inside the process."""
        addr = self.arg_int(n) & _UINT
        if size < 0 or addr >= self.sz or addr + size > self.sz:
            raise BadAddress(f"{size} bytes at {addr:#x} are outside the process")
        return addr

    def arg_str(self, n: int) -> bytes:
        """The nth argument as a NUL-terminated string."""
        return self.fetch_str(self.arg_int(n))


Handler = Callable[[UserContext], int]


class SyscallTable:
    """Maps system-call numbers to handlers and runs them."""

    def __init__(
        self,
        handlers: Optional[Mapping[int, Handler]] = None,
        console: Optional[TextIO] = None,
    ) -> None:
        self._handlers: dict[int, Handler] = {}
        self._console = console
        for number, handler in (handlers or {}).items():
            self.register(number, handler)

    def __contains__(self, number: object) -> bool:
        return number in self._handlers

    def register(self, number: int, handler: Handler) -> None:
        number = int(number)
        if number <= 0:
            raise ValueError(f"system call number must be positive, got {number}")
        if number in self._handlers:
            raise ValueError(f"system call {number} is already registered")
        self._handlers[number] = handler

    def dispatch(self, ctx: UserContext, num: int) -> int:
        """Run system call num for ctx; the value user code sees in %eax."""
        handler = self._handlers.get(num)
        if handler is None:
            console = self._console if self._console is not None else sys.stderr
            print(f"{ctx.pid} {ctx.name}: unknown sys call {num}", file=console)
            return -1
        try:
            return handler(ctx)
        except BadAddress:
            return -1