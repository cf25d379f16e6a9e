import io
import struct

import pytest

from teachos.syscall import BadAddress, SyscallNumber, SyscallTable, UserContext


def make_context(*args, esp=16, size=128):
    memory = bytearray(size)
    struct.pack_into("<I", memory, esp, 0)
    for i, value in enumerate(args):
        struct.pack_into("<i", memory, esp + 4 + 4 * i, value)
    return UserContext(memory=memory, esp=esp, pid=7, name="prog")


def test_dispatch_by_raw_syscall_numbers():
    table = SyscallTable()
    table.register(SyscallNumber.FORK, lambda ctx: 101)
    table.register(SyscallNumber.CLOSE, lambda ctx: 121)
    table.register(SyscallNumber.GET_PROC_INFO, lambda ctx: 124)
    ctx = make_context()
    assert table.dispatch(ctx, 1) == 101
    assert table.dispatch(ctx, 21) == 121
    assert table.dispatch(ctx, 24) == 124
    assert len(SyscallNumber) == 24


def test_fetch_int_is_signed_and_bounded():
    ctx = make_context(-5)
    assert ctx.fetch_int(ctx.esp + 4) == -5
    assert ctx.fetch_int(ctx.sz - 4) == 0
    with pytest.raises(BadAddress):
        ctx.fetch_int(ctx.sz - 3)
    with pytest.raises(BadAddress):
        ctx.fetch_int(-1)


def test_fetch_str():
    ctx = make_context()
    ctx.memory[64:70] = b"hello\0"
    assert ctx.fetch_str(64) == b"hello"
    assert ctx.fetch_str(69) == b""
    with pytest.raises(BadAddress):
        ctx.fetch_str(ctx.sz)


def test_fetch_str_unterminated():
    ctx = make_context(size=80)
    ctx.memory[70:80] = b"x" * 10
    with pytest.raises(BadAddress):
        ctx.fetch_str(70)


def test_arg_int_reads_past_return_address():
    ctx = make_context(11, 22, 33)
    assert [ctx.arg_int(i) for i in range(3)] == [11, 22, 33]


def test_arg_int_beyond_memory():
    ctx = make_context(esp=120, size=128)
    with pytest.raises(BadAddress):
        ctx.arg_int(1)


def test_arg_ptr_checks_range():
    ctx = make_context(64, 100)
    assert ctx.arg_ptr(0, 64) == 64
    with pytest.raises(BadAddress):
        ctx.arg_ptr(0, 65)
    with pytest.raises(BadAddress):
        ctx.arg_ptr(0, -1)


def test_arg_ptr_negative_pointer():
    ctx = make_context(-4)
    with pytest.raises(BadAddress):
        ctx.arg_ptr(0, 1)


def test_arg_str():
    ctx = make_context(80)
    ctx.memory[80:85] = b"path\0"
    assert ctx.arg_str(0) == b"path"


def test_dispatch_runs_handler():
    table = SyscallTable({SyscallNumber.GETPID: lambda ctx: ctx.pid})
    ctx = make_context()
    assert table.dispatch(ctx, SyscallNumber.GETPID) == ctx.pid
    assert SyscallNumber.GETPID in table


def test_dispatch_handler_reading_arguments():
    table = SyscallTable()
    table.register(SyscallNumber.KILL, lambda ctx: ctx.arg_int(0) + ctx.arg_int(1))
    assert table.dispatch(make_context(40, 2), SyscallNumber.KILL) == 42


def test_dispatch_bad_argument_returns_minus_one():
    table = SyscallTable({SyscallNumber.OPEN: lambda ctx: len(ctx.arg_str(0))})
    assert table.dispatch(make_context(1000), SyscallNumber.OPEN) == -1


def test_dispatch_unknown_number():
    console = io.StringIO()
    table = SyscallTable(console=console)
    ctx = make_context()
    assert table.dispatch(ctx, 99) == -1
    assert console.getvalue() == "7 prog: unknown sys call 99\n"


def test_register_rejects_bad_numbers():
    table = SyscallTable({SyscallNumber.FORK: lambda ctx: 0})
    with pytest.raises(ValueError):
        table.register(0, lambda ctx: 0)
    with pytest.raises(ValueError):
        table.register(SyscallNumber.FORK, lambda ctx: 0)