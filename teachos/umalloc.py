"""A first-fit free-list allocator over a simulated user heap."""

from __future__ import annotations

from .mmu import KERNBASE

_HEADER = 8  # bytes in one block header, also the allocation unit
_MIN_UNITS = 4096
_BASE = -_HEADER  # the zero-sized sentinel lies just below the heap


class Allocator:
    """Circular, address-ordered free list with coalescing on free."""

    def __init__(self, heap_limit: int = KERNBASE) -> None:
        if heap_limit < 0:
            raise ValueError("heap limit must not be negative")
        self._limit = heap_limit
        self._brk = 0
        self._next: dict[int, int] = {}
        self._size: dict[int, int] = {}  # block sizes in units, keyed by header address
        self._freep: int | None = None
        self._allocated: set[int] = set()

    def sbrk(self, n: int) -> int:
        """Move the heap break by n bytes; return the old break."""
        old = self._brk
        new = old + n
        if new < 0 or new > self._limit:
            raise MemoryError(f"cannot move heap break by {n}")
        self._brk = new
        return old

    def _release(self, bp: int) -> None:
        nxt = self._next
        size = self._size
        p = self._freep
        assert p is not None
        while not (p < bp < nxt[p]):
            if p >= nxt[p] and (bp > p or bp < nxt[p]):
                break
            p = nxt[p]
        after = nxt[p]
        if bp + size[bp] * _HEADER == after:
            size[bp] += size.pop(after)
            nxt[bp] = nxt.pop(after)
        else:
            nxt[bp] = after
        if p + size[p] * _HEADER == bp:
            size[p] += size.pop(bp)
            nxt[p] = nxt.pop(bp)
        else:
            nxt[p] = bp
        self._freep = p

    def _morecore(self, nunits: int) -> int | None:
        nunits = max(nunits, _MIN_UNITS)
        try:
            hp = self.sbrk(nunits * _HEADER)
        except MemoryError:
            return None
        self._size[hp] = nunits
        self._release(hp)
        return self._freep

    def malloc(self, nbytes: int) -> int:
        """Allocate nbytes; return the address of the block."""
        if nbytes < 0:
            raise ValueError("cannot allocate a negative size")
        nunits = (nbytes + _HEADER - 1) // _HEADER + 1
        if self._freep is None:
            self._next[_BASE] = _BASE
            self._size[_BASE] = 0
            self._freep = _BASE
        prevp = self._freep
        p = self._next[prevp]
        while True:
            if self._size[p] >= nunits:
                if self._size[p] == nunits:
                    self._next[prevp] = self._next.pop(p)
                else:
                    self._size[p] -= nunits
                    p += self._size[p] * _HEADER
                    self._size[p] = nunits
                self._freep = prevp
                self._allocated.add(p)
                return p + _HEADER
            if p == self._freep:
                grown = self._morecore(nunits)
                if grown is None:
                    raise MemoryError(f"cannot allocate {nbytes} bytes")
                p = grown
            prevp, p = p, self._next[p]

    def free(self, addr: int) -> None:
        """Return a block obtained from malloc to the free list."""
        bp = addr - _HEADER
        if bp not in self._allocated:
            raise ValueError(f"address {addr:#x} was not allocated")
        self._allocated.remove(bp)
        self._release(bp)