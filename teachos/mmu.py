"""x86 memory-management definitions: address arithmetic, layout and descriptors."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import ClassVar

_UINT_MASK = 0xFFFFFFFF

# Eflags register
FL_IF = 0x00000200

# Control register flags
CR0_PE = 0x00000001
CR0_WP = 0x00010000
CR0_PG = 0x80000000
CR4_PSE = 0x00000010

# Segment selectors (indexes into the GDT)
SEG_KCODE = 1
SEG_KDATA = 2
SEG_UCODE = 3
SEG_UDATA = 4
SEG_TSS = 5
NSEGS = 6

DPL_USER = 0x3

# Application segment type bits
STA_X = 0x8
STA_W = 0x2
STA_R = 0x2

# System segment type bits
STS_T32A = 0x9
STS_IG32 = 0xE
STS_TG32 = 0xF

# Page directory and page table constants
NPDENTRIES = 1024
NPTENTRIES = 1024
PGSIZE = 4096
PTXSHIFT = 12
PDXSHIFT = 22

# Page table / directory entry flags
PTE_P = 0x001
PTE_W = 0x002
PTE_U = 0x004
PTE_PS = 0x080

# Memory layout
EXTMEM = 0x100000
PHYSTOP = 0xE000000
DEVSPACE = 0xFE000000
KERNBASE = 0x80000000
KERNLINK = KERNBASE + EXTMEM

# System parameters
NPROC = 64
KSTACKSIZE = 4096
NCPU = 8
NOFILE = 16
NFILE = 100
NINODE = 50
NDEV = 10
ROOTDEV = 1
MAXARG = 32
MAXOPBLOCKS = 10
LOGSIZE = MAXOPBLOCKS * 3
NBUF = MAXOPBLOCKS * 3
FSSIZE = 1000


def pdx(va: int) -> int:
    """Page directory index of a virtual address."""
    return ((va & _UINT_MASK) >> PDXSHIFT) & 0x3FF


def ptx(va: int) -> int:
    """Page table index of a virtual address."""
    return ((va & _UINT_MASK) >> PTXSHIFT) & 0x3FF


def pgaddr(d: int, t: int, o: int) -> int:
    """Build a virtual address from directory index, table index and offset."""
    return ((d << PDXSHIFT) | (t << PTXSHIFT) | o) & _UINT_MASK


def pgroundup(sz: int) -> int:
    """Round up to a page boundary (wrapping like a 32-bit unsigned value)."""
    return (sz + PGSIZE - 1) & ~(PGSIZE - 1) & _UINT_MASK


def pgrounddown(a: int) -> int:
    """Round down to a page boundary."""
    return a & ~(PGSIZE - 1) & _UINT_MASK


def pte_addr(pte: int) -> int:
    """Physical address held in a page table entry."""
    return pte & ~0xFFF & _UINT_MASK


def pte_flags(pte: int) -> int:
    """Flag bits of a page table entry."""
    return pte & 0xFFF


def v2p(a: int) -> int:
    """Kernel virtual address to physical address."""
    return (a - KERNBASE) & _UINT_MASK


def p2v(a: int) -> int:
    """Physical address to kernel virtual address."""
    return (a + KERNBASE) & _UINT_MASK


def seg_asm(seg_type: int, base: int, limit: int) -> bytes:
    """Encode an application segment descriptor the way the boot assembler does.

    The limit is in 4096-byte units and the segment is 32-bit.
    """
    return (
        ((limit >> 12) & 0xFFFF).to_bytes(2, "little")
        + (base & 0xFFFF).to_bytes(2, "little")
        + bytes(
            (
                (base >> 16) & 0xFF,
                0x90 | seg_type,
                0xC0 | ((limit >> 28) & 0xF),
                (base >> 24) & 0xFF,
            )
        )
    )


def _pack_bits(obj: object, layout: tuple[tuple[str, int], ...]) -> int:
    word = 0
    shift = 0
    for name, width in layout:
        value = getattr(obj, name)
        if not 0 <= value < (1 << width):
            raise ValueError(f"{name}={value} does not fit in {width} bits")
        word |= value << shift
        shift += width
    return word


def _unpack_bits(word: int, layout: tuple[tuple[str, int], ...]) -> dict[str, int]:
    values = {}
    for name, width in layout:
        values[name] = word & ((1 << width) - 1)
        word >>= width
    return values


@dataclass(frozen=True)
class SegmentDescriptor:
    """A GDT segment descriptor, field for field."""

    lim_15_0: int = 0
    base_15_0: int = 0
    base_23_16: int = 0
    seg_type: int = 0
    s: int = 0
    dpl: int = 0
    p: int = 0
    lim_19_16: int = 0
    avl: int = 0
    rsv1: int = 0
    db: int = 0
    g: int = 0
    base_31_24: int = 0

    SIZE: ClassVar[int] = 8
    _LAYOUT: ClassVar[tuple[tuple[str, int], ...]] = (
        ("lim_15_0", 16),
        ("base_15_0", 16),
        ("base_23_16", 8),
        ("seg_type", 4),
        ("s", 1),
        ("dpl", 2),
        ("p", 1),
        ("lim_19_16", 4),
        ("avl", 1),
        ("rsv1", 1),
        ("db", 1),
        ("g", 1),
        ("base_31_24", 8),
    )

    @classmethod
    def normal(cls, seg_type: int, base: int, limit: int, dpl: int) -> SegmentDescriptor:
        """A 32-bit segment whose limit is counted in 4 KiB pages."""
        return cls(
            lim_15_0=(limit >> 12) & 0xFFFF,
            base_15_0=base & 0xFFFF,
            base_23_16=(base >> 16) & 0xFF,
            seg_type=seg_type & 0xF,
            s=1,
            dpl=dpl & 0x3,
            p=1,
            lim_19_16=(limit >> 28) & 0xF,
            avl=0,
            rsv1=0,
            db=1,
            g=1,
            base_31_24=(base >> 24) & 0xFF,
        )

    @classmethod
    def small(cls, seg_type: int, base: int, limit: int, dpl: int) -> SegmentDescriptor:
        """A segment whose limit is counted in bytes."""
        return cls(
            lim_15_0=limit & 0xFFFF,
            base_15_0=base & 0xFFFF,
            base_23_16=(base >> 16) & 0xFF,
            seg_type=seg_type & 0xF,
            s=1,
            dpl=dpl & 0x3,
            p=1,
            lim_19_16=(limit >> 16) & 0xF,
            avl=0,
            rsv1=0,
            db=1,
            g=0,
            base_31_24=(base >> 24) & 0xFF,
        )

    @property
    def base(self) -> int:
        return self.base_15_0 | (self.base_23_16 << 16) | (self.base_31_24 << 24)

    @property
    def limit(self) -> int:
        """The raw 20-bit limit field."""
        return self.lim_15_0 | (self.lim_19_16 << 16)

    def pack(self) -> bytes:
        return _pack_bits(self, self._LAYOUT).to_bytes(self.SIZE, "little")

    @classmethod
    def unpack(cls, data: bytes) -> SegmentDescriptor:
        if len(data) != cls.SIZE:
            raise ValueError(f"segment descriptor needs {cls.SIZE} bytes, got {len(data)}")
        return cls(**_unpack_bits(int.from_bytes(data, "little"), cls._LAYOUT))


@dataclass(frozen=True)
class GateDescriptor:
    """An IDT interrupt or trap gate."""

    off_15_0: int = 0
    cs: int = 0
    args: int = 0
    rsv1: int = 0
    gate_type: int = 0
    s: int = 0
    dpl: int = 0
    p: int = 0
    off_31_16: int = 0

    SIZE: ClassVar[int] = 8
    _LAYOUT: ClassVar[tuple[tuple[str, int], ...]] = (
        ("off_15_0", 16),
        ("cs", 16),
        ("args", 5),
        ("rsv1", 3),
        ("gate_type", 4),
        ("s", 1),
        ("dpl", 2),
        ("p", 1),
        ("off_31_16", 16),
    )

    @classmethod
    def make(cls, istrap: bool, sel: int, off: int, dpl: int) -> GateDescriptor:
        """A present gate; trap gates leave interrupts enabled, interrupt gates clear them."""
        return cls(
            off_15_0=off & 0xFFFF,
            cs=sel & 0xFFFF,
            args=0,
            rsv1=0,
            gate_type=STS_TG32 if istrap else STS_IG32,
            s=0,
            dpl=dpl & 0x3,
            p=1,
            off_31_16=(off & _UINT_MASK) >> 16,
        )

    @property
    def offset(self) -> int:
        return self.off_15_0 | (self.off_31_16 << 16)

    def pack(self) -> bytes:
        return _pack_bits(self, self._LAYOUT).to_bytes(self.SIZE, "little")

    @classmethod
    def unpack(cls, data: bytes) -> GateDescriptor:
        if len(data) != cls.SIZE:
            raise ValueError(f"gate descriptor needs {cls.SIZE} bytes, got {len(data)}")
        return cls(**_unpack_bits(int.from_bytes(data, "little"), cls._LAYOUT))


__all__ = [name for name in dir() if not name.startswith("_") and name not in {"annotations", "dataclass", "fields", "ClassVar"}]