"""Spin locks with interrupt bookkeeping, and sleeping locks."""

from __future__ import annotations

import threading
from dataclasses import dataclass


class LockError(RuntimeError):
    """A lock or interrupt-nesting rule was broken."""


@dataclass(eq=False)
class Cpu:
    """Per-CPU interrupt state: whether interrupts are on and the push_cli depth."""

    interrupts_enabled: bool = True
    ncli: int = 0
    intena: bool = False

    def push_cli(self) -> None:
        """Disable interrupts, remembering whether the outermost push had them on."""
        was_enabled = self.interrupts_enabled
        self.interrupts_enabled = False
        if self.ncli == 0:
            self.intena = was_enabled
        self.ncli += 1

    def pop_cli(self) -> None:
        """Undo one push_cli; interrupts come back only after the last one."""
        if self.interrupts_enabled:
            raise LockError("popcli - interruptible")
        if self.ncli <= 0:
            raise LockError("popcli")
        self.ncli -= 1
        if self.ncli == 0 and self.intena:
            self.interrupts_enabled = True


class SpinLock:
    """Mutual exclusion between CPUs; interrupts stay off while it is held."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.locked = False
        self.cpu: Cpu | None = None
        self._lock = threading.Lock()

    def acquire(self, cpu: Cpu) -> None:
        cpu.push_cli()
        if self.holding(cpu):
            raise LockError(f"acquire {self.name}")
        self._lock.acquire()
        self.locked = True
        self.cpu = cpu

    def release(self, cpu: Cpu) -> None:
        if not self.holding(cpu):
            raise LockError(f"release {self.name}")
        self.cpu = None
        self.locked = False
        self._lock.release()
        cpu.pop_cli()

    def holding(self, cpu: Cpu) -> bool:
        """Whether this CPU holds the lock."""
        cpu.push_cli()
        try:
            return self.locked and self.cpu is cpu
        finally:
            cpu.pop_cli()


class SleepLock:
    """A long-term lock; waiters sleep rather than spin."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.locked = False
        self.pid = 0
        self._cond = threading.Condition()

    def acquire(self, pid: int) -> None:
        with self._cond:
            while self.locked:
                self._cond.wait()
            self.locked = True
            self.pid = pid

    def release(self) -> None:
        with self._cond:
            self.locked = False
            self.pid = 0
            self._cond.notify_all()

    def holding(self, pid: int) -> bool:
        with self._cond:
            return self.locked and self.pid == pid