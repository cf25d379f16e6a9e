# teachos

Python models of the core pieces of a small Unix-like teaching kernel and
its user programs. Each piece can be used and tested on its own. No
hardware or emulator is needed, and the package has no dependencies
outside the standard library.

## Contents

- `teachos.mmu`: x86 paging arithmetic (`pdx`, `ptx`, `pgaddr`,
  `pgroundup`, `pgrounddown`, `pte_addr`, `pte_flags`), kernel address
  conversion (`v2p`, `p2v`), memory-layout and system constants
  (`KERNBASE`, `PGSIZE`, `NPROC`, ...), and segment and gate descriptors
  that pack to and unpack from their 8-byte form (`SegmentDescriptor`,
  `GateDescriptor`, `seg_asm`).
- `teachos.elf`: reading and writing ELF32 file headers and program
  headers (`ElfHeader`, `ProgramHeader`, `program_headers`). Short input,
  a bad magic number or program headers past the end of the image raise
  `ElfFormatError`.
- `teachos.cstrings`: C-style string and memory helpers on bytes
  (`memcmp`, `memmove`, `strncmp`, `strncpy`, `safestrcpy`, `strlen`,
  `strcmp`, `strchr`, `atoi`, `gets`). Strings end at their first NUL.
- `teachos.shell`: the shell grammar. `parse_command` turns one line into
  a tree of `ExecCommand`, `RedirCommand`, `PipeCommand`, `ListCommand`
  and `BackCommand`; it handles `|`, `;`, `&`, `<`, `>`, `>>` and
  parenthesised blocks, and raises `ShellSyntaxError` on bad input or
  more than nine arguments. Redirection modes are `OpenMode` flags.
- `teachos.wc`: line, word and byte counting (`count`, `count_stream`,
  both returning a `WordCount`).
- `teachos.umalloc`: a first-fit, address-ordered free-list allocator
  over a simulated heap (`Allocator` with `sbrk`, `malloc`, `free`). Running
  past the heap limit raises `MemoryError`; freeing an address that was not
  allocated raises `ValueError`.
- `teachos.locks`: per-CPU interrupt nesting (`Cpu.push_cli`,
  `Cpu.pop_cli`), spin locks that refuse to be acquired twice or released
  by a CPU that does not hold them (`SpinLock`, raising `LockError`), and
  sleep locks keyed by process id (`SleepLock`).
- `teachos.vm`: two-level page tables over simulated physical memory
  (`PhysicalMemory`, `PageTable`, `setup_kvm`): mapping, growing and
  shrinking user memory, copying an address space, and `copyout`. Broken
  invariants raise `VmError`; running out of pages raises `MemoryError`.
- `teachos.syscall`: system call numbers (`SyscallNumber`), fetching
  arguments from a process's memory (`UserContext`, raising `BadAddress`),
  and dispatch (`SyscallTable`). Unknown calls are reported on the console
  and return -1, as do handlers that raise `BadAddress`.
- `teachos.traps`: trap numbers (`Trap`) and how a trap is handled
  (`classify`, returning a `TrapAction`).

## Installation

```
pip install .
```

## Examples

Parse a shell command line:

```python
from teachos.shell import parse_command

cmd = parse_command("cat < input | wc > out &")
# BackCommand(PipeCommand(RedirCommand(ExecCommand(("cat",)), "input", ...), ...))
```

Count lines, words and bytes:

```python
from teachos.wc import count

result = count(b"hello world\n")  # WordCount(lines=1, words=2, chars=12)
```

The same counting is available from the command line. It prints
`lines words bytes name` for each file, or reads standard input when no
file is named:

```
teachos-wc README.md
```

Build a kernel page table and grow a user address space:

```python
from teachos.vm import PhysicalMemory, setup_kvm

memory = PhysicalMemory()
pgdir = setup_kvm(memory, 0x80108000)
pgdir.alloc_uvm(0, 8192)
pgdir.copyout(100, b"hello")
```

## What this package does not do

It does not boot or run a kernel. There is no scheduler, no process
table, no file system and no device drivers: system call handlers are
whatever you register with `SyscallTable`, and `classify` only says what
the trap handler would do. The shell module parses command lines but does
not run them; the only command installed is `teachos-wc`.

## Tests

```
pip install .[test]
pytest
```