"""Trap and interrupt numbers, and what the trap handler does with each."""

from __future__ import annotations

import enum

IRQ_TIMER = 0
IRQ_KBD = 1
IRQ_COM1 = 4
IRQ_IDE = 14
IRQ_ERROR = 19
IRQ_SPURIOUS = 31


class Trap(enum.IntEnum):
    """Processor exceptions and the vectors chosen for interrupts and system calls."""

    DIVIDE = 0
    DEBUG = 1
    NMI = 2
    BRKPT = 3
    OFLOW = 4
    BOUND = 5
    ILLOP = 6
    DEVICE = 7
    DBLFLT = 8
    TSS = 10
    SEGNP = 11
    STACK = 12
    GPFLT = 13
    PGFLT = 14
    FPERR = 16
    ALIGN = 17
    MCHK = 18
    SIMDERR = 19
    IRQ0 = 32
    SYSCALL = 64
    DEFAULT = 500


class TrapAction(enum.Enum):
    """The handler's response to a trap."""

    SYSCALL = "syscall"
    TIMER_TICK = "timer tick"
    IDE = "ide"
    IGNORE = "ignore"
    KEYBOARD = "keyboard"
    UART = "uart"
    SPURIOUS = "spurious"
    KILL_PROCESS = "kill process"
    KERNEL_PANIC = "kernel panic"

    @property
    def sends_eoi(self) -> bool:
        """Whether the local APIC is acknowledged after handling."""
        return self in _EOI_ACTIONS


_EOI_ACTIONS = frozenset(
    {
        TrapAction.TIMER_TICK,
        TrapAction.IDE,
        TrapAction.KEYBOARD,
        TrapAction.UART,
        TrapAction.SPURIOUS,
    }
)

_DEVICE_ACTIONS = {
    Trap.IRQ0 + IRQ_TIMER: TrapAction.TIMER_TICK,
    Trap.IRQ0 + IRQ_IDE: TrapAction.IDE,
    Trap.IRQ0 + IRQ_IDE + 1: TrapAction.IGNORE,
    Trap.IRQ0 + IRQ_KBD: TrapAction.KEYBOARD,
    Trap.IRQ0 + IRQ_COM1: TrapAction.UART,
    Trap.IRQ0 + 7: TrapAction.SPURIOUS,
    Trap.IRQ0 + IRQ_SPURIOUS: TrapAction.SPURIOUS,
}


def classify(trapno: int, in_user: bool, has_process: bool) -> TrapAction:
    """Decide how a trap is handled, given where it came from."""
    if trapno == Trap.SYSCALL:
        return TrapAction.SYSCALL
    action = _DEVICE_ACTIONS.get(trapno)
    if action is not None:
        return action
    if not has_process or not in_user:
        return TrapAction.KERNEL_PANIC
    return TrapAction.KILL_PROCESS