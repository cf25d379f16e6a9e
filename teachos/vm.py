"""Two-level x86 page tables built over a simulated physical memory."""

from __future__ import annotations

import struct
from typing import Callable, Optional

from .mmu import (
    DEVSPACE,
    EXTMEM,
    KERNBASE,
    KERNLINK,
    NPDENTRIES,
    PGSIZE,
    PHYSTOP,
    PTE_P,
    PTE_U,
    PTE_W,
    p2v,
    pdx,
    pgaddr,
    pgrounddown,
    pgroundup,
    pte_addr,
    pte_flags,
    ptx,
    v2p,
)

_UINT = 0xFFFFFFFF
_ENTRY = 4
_DEFAULT_DATA = KERNLINK + 0x100000


class VmError(RuntimeError):
    """A page-table invariant was broken or an address is not mapped."""


class PhysicalMemory:
    """A pool of physical pages handed out one page at a time."""

    def __init__(self, npages: int = 512, base: int = 0x400000) -> None:
        if base < 0 or base % PGSIZE:
            raise ValueError("base must be a non-negative page-aligned address")
        if npages < 0 or base + npages * PGSIZE > PHYSTOP:
            raise ValueError("memory pool does not fit below PHYSTOP")
        self.base = base
        self.npages = npages
        self._free = [base + i * PGSIZE for i in range(npages)]
        self._pages: dict[int, bytearray] = {}

    @property
    def free_pages(self) -> int:
        """Number of pages not yet handed out."""
        return len(self._free)

    def alloc(self) -> int:
        """Hand out one zero-filled page; return its physical address."""
        if not self._free:
            raise MemoryError("out of physical memory")
        pa = self._free.pop()
        self._pages[pa] = bytearray(PGSIZE)
        return pa

    def free(self, pa: int) -> None:
        """Take back a page obtained from alloc."""
        if pa not in self._pages:
            raise VmError(f"kfree: {pa:#x} is not an allocated page")
        del self._pages[pa]
        self._free.append(pa)

    def _frame(self, pa: int) -> tuple[bytearray, int]:
        start = pgrounddown(pa)
        page = self._pages.get(start)
        if page is None:
            raise VmError(f"physical address {pa:#x} is not allocated")
        return page, pa - start

    def read(self, pa: int, n: int) -> bytes:
        """Read n bytes starting at physical address pa."""
        if n < 0:
            raise ValueError("cannot read a negative number of bytes")
        out = bytearray()
        while n > 0:
            page, off = self._frame(pa)
            chunk = min(n, PGSIZE - off)
            out += page[off:off + chunk]
            pa += chunk
            n -= chunk
        return bytes(out)

    def write(self, pa: int, data: bytes) -> None:
        """Write data starting at physical address pa."""
        view = memoryview(bytes(data))
        while len(view):
            page, off = self._frame(pa)
            chunk = min(len(view), PGSIZE - off)
            page[off:off + chunk] = view[:chunk]
            pa += chunk
            view = view[chunk:]


class PageTable:
    """A page directory and the page tables it points to."""

    def __init__(self, memory: PhysicalMemory, data_addr: Optional[int] = None) -> None:
        self.memory = memory
        self.data_addr = data_addr
        self.pgdir: Optional[int] = memory.alloc()

    def _directory(self) -> int:
        if self.pgdir is None:
            raise VmError("freevm: no pgdir")
        return self.pgdir

    def _load(self, pa: int) -> int:
        page, off = self.memory._frame(pa)
        return int.from_bytes(page[off:off + _ENTRY], "little")

    def _store(self, pa: int, value: int) -> None:
        page, off = self.memory._frame(pa)
        page[off:off + _ENTRY] = (value & _UINT).to_bytes(_ENTRY, "little")

    def walk(self, va: int, alloc: bool = False) -> Optional[int]:
        """Physical address of the PTE for va, creating its page table if alloc is set."""
        pde_pa = self._directory() + _ENTRY * pdx(va)
        pde = self._load(pde_pa)
        if pde & PTE_P:
            pgtab = pte_addr(pde)
        else:
            if not alloc:
                return None
            try:
                pgtab = self.memory.alloc()
            except MemoryError:
                return None
            self.memory.write(pgtab, bytes(PGSIZE))
            self._store(pde_pa, pgtab | PTE_P | PTE_W | PTE_U)
        return pgtab + _ENTRY * ptx(va)

    def map_pages(self, va: int, size: int, pa: int, perm: int) -> None:
        """Map the pages covering [va, va+size) to physical pages starting at pa."""
        if size <= 0:
            raise ValueError("mapping size must be positive")
        a = pgrounddown(va)
        last = pgrounddown(va + size - 1)
        while True:
            pte = self.walk(a, True)
            if pte is None:
                raise MemoryError("out of memory for page tables")
            if self._load(pte) & PTE_P:
                raise VmError("remap")
            self._store(pte, pa | perm | PTE_P)
            if a == last:
                break
            a = (a + PGSIZE) & _UINT
            pa = (pa + PGSIZE) & _UINT

    def init_uvm(self, init: bytes) -> None:
        """Load a program of less than one page at virtual address 0."""
        if len(init) >= PGSIZE:
            raise VmError("inituvm: more than a page")
        mem = self.memory.alloc()
        self.memory.write(mem, bytes(PGSIZE))
        self.map_pages(0, PGSIZE, mem, PTE_W | PTE_U)
        self.memory.write(mem, init)

    def load_uvm(self, addr: int, read: Callable[[int, int], bytes], offset: int, sz: int) -> None:
        """Fill already-mapped pages at addr with sz bytes from read(offset, n)."""
        if addr % PGSIZE:
            raise VmError("loaduvm: addr must be page aligned")
        for i in range(0, sz, PGSIZE):
            pte = self.walk(addr + i)
            if pte is None:
                raise VmError("loaduvm: address should exist")
            pa = pte_addr(self._load(pte))
            n = min(sz - i, PGSIZE)
            data = read(offset + i, n)
            if len(data) != n:
                raise VmError("loaduvm: short read")
            self.memory.write(pa, data)

    def alloc_uvm(self, oldsz: int, newsz: int) -> int:
        """Grow the user part from oldsz to newsz bytes; return the new size."""
        if newsz >= KERNBASE:
            raise MemoryError("user address space would reach the kernel")
        if newsz < oldsz:
            return oldsz
        for a in range(pgroundup(oldsz), newsz, PGSIZE):
            try:
                mem = self.memory.alloc()
            except MemoryError:
                self.dealloc_uvm(newsz, oldsz)
                raise
            self.memory.write(mem, bytes(PGSIZE))
            try:
                self.map_pages(a, PGSIZE, mem, PTE_W | PTE_U)
            except MemoryError:
                self.dealloc_uvm(newsz, oldsz)
                self.memory.free(mem)
                raise
        return newsz

    def dealloc_uvm(self, oldsz: int, newsz: int) -> int:
        """Shrink the user part from oldsz to newsz bytes; return the new size."""
        if newsz >= oldsz:
            return oldsz
        a = pgroundup(newsz)
        while a < oldsz:
            pte = self.walk(a)
            if pte is None:
                if pdx(a) == NPDENTRIES - 1:
                    break
                a = pgaddr(pdx(a) + 1, 0, 0) - PGSIZE
            else:
                entry = self._load(pte)
                if entry & PTE_P:
                    pa = pte_addr(entry)
                    if pa == 0:
                        raise VmError("kfree")
                    self.memory.free(pa)
                    self._store(pte, 0)
            a += PGSIZE
        return newsz

    def free(self) -> None:
        """Release every user page, every page table and the directory itself."""
        pgdir = self._directory()
        self.dealloc_uvm(KERNBASE, 0)
        for (pde,) in struct.iter_unpack("<I", self.memory.read(pgdir, PGSIZE)):
            if pde & PTE_P:
                self.memory.free(pte_addr(pde))
        self.memory.free(pgdir)
        self.pgdir = None

    def clear_pteu(self, uva: int) -> None:
        """Make the page at uva inaccessible to user code."""
        pte = self.walk(uva)
        if pte is None:
            raise VmError("clearpteu")
        self._store(pte, self._load(pte) & ~PTE_U)

    def copy(self, sz: int) -> PageTable:
        """A new page table holding a copy of the first sz bytes of user memory."""
        if self.data_addr is not None:
            child = setup_kvm(self.memory, self.data_addr)
        else:
            child = PageTable(self.memory)
        try:
            for i in range(0, sz, PGSIZE):
                pte = self.walk(i)
                if pte is None:
                    raise VmError("copyuvm: pte should exist")
                entry = self._load(pte)
                if not entry & PTE_P:
                    raise VmError("copyuvm: page not present")
                mem = self.memory.alloc()
                self.memory.write(mem, self.memory.read(pte_addr(entry), PGSIZE))
                try:
                    child.map_pages(i, PGSIZE, mem, pte_flags(entry))
                except (MemoryError, VmError):
                    self.memory.free(mem)
                    raise
        except (MemoryError, VmError):
            child.free()
            raise
        return child

    def uva2ka(self, uva: int) -> Optional[int]:
        """Kernel address of the user page holding uva, or None if it is not a user page."""
        pte = self.walk(uva)
        if pte is None:
            return None
        entry = self._load(pte)
        if not entry & PTE_P or not entry & PTE_U:
            return None
        return p2v(pte_addr(entry))

    def copyout(self, va: int, data: bytes) -> None:
        """Copy data to user virtual address va."""
        data = bytes(data)
        pos = 0
        while pos < len(data):
            va0 = pgrounddown(va)
            ka = self.uva2ka(va0)
            if ka is None:
                raise VmError(f"copyout: {va0:#x} is not a user page")
            n = min(PGSIZE - (va - va0), len(data) - pos)
            self.memory.write(v2p(ka) + (va - va0), data[pos:pos + n])
            pos += n
            va = va0 + PGSIZE


def setup_kvm(memory: PhysicalMemory, data_addr: int = _DEFAULT_DATA) -> PageTable:
    """A page table holding the kernel's mappings; data_addr is where kernel data starts."""
    if data_addr % PGSIZE or not KERNLINK < data_addr < p2v(PHYSTOP):
        raise ValueError(f"bad kernel data address {data_addr:#x}")
    if p2v(PHYSTOP) > DEVSPACE:
        raise VmError("PHYSTOP too high")
    kmap = (
        (KERNBASE, 0, EXTMEM, PTE_W),
        (KERNLINK, v2p(KERNLINK), v2p(data_addr), 0),
        (data_addr, v2p(data_addr), PHYSTOP, PTE_W),
        (DEVSPACE, DEVSPACE, 0, PTE_W),
    )
    table = PageTable(memory, data_addr)
    try:
        for virt, start, end, perm in kmap:
            table.map_pages(virt, (end - start) & _UINT, start, perm)
    except MemoryError:
        table.free()
        raise
    return table