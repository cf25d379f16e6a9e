"""NUL-terminated byte-string and memory helpers with C semantics."""

from __future__ import annotations

from itertools import takewhile
from typing import BinaryIO, Union

BytesLike = Union[bytes, bytearray, memoryview, str]


def _raw(s: BytesLike) -> bytes:
    if isinstance(s, str):
        return s.encode("latin-1")
    return bytes(s)


def _cstr(s: BytesLike) -> bytes:
    """The bytes of s up to (not including) its first NUL."""
    raw = _raw(s)
    end = raw.find(b"\0")
    return raw if end < 0 else raw[:end]


def _first_difference(a: bytes, b: bytes) -> int:
    for x, y in zip(a + b"\0", b + b"\0"):
        if x != y:
            return x - y
    return 0


def memcmp(a: BytesLike, b: BytesLike, n: int) -> int:
    """Difference of the first unequal byte among the first n, or 0."""
    ra, rb = _raw(a), _raw(b)
    if n < 0 or n > len(ra) or n > len(rb):
        raise ValueError(f"cannot compare {n} bytes")
    for x, y in zip(ra[:n], rb[:n]):
        if x != y:
            return x - y
    return 0


def memmove(buf: bytearray, dst: int, src: int, n: int) -> bytearray:
    """Copy n bytes of buf from offset src to offset dst; overlap is safe."""
    if n < 0 or min(dst, src) < 0 or max(dst, src) + n > len(buf):
        raise ValueError(f"move of {n} bytes from {src} to {dst} is out of range")
    buf[dst:dst + n] = bytes(buf[src:src + n])
    return buf


def strncmp(p: BytesLike, q: BytesLike, n: int) -> int:
    """Compare at most n characters of two C strings."""
    if n <= 0:
        return 0
    return _first_difference(_cstr(p)[:n], _cstr(q)[:n])


def strcmp(p: BytesLike, q: BytesLike) -> int:
    """Compare two C strings; negative, zero or positive."""
    return _first_difference(_cstr(p), _cstr(q))


def strncpy(src: BytesLike, n: int) -> bytes:
    """The n-byte buffer strncpy fills: the string, NUL padded, not always terminated."""
    if n <= 0:
        return b""
    return _cstr(src)[:n].ljust(n, b"\0")


def safestrcpy(src: BytesLike, n: int) -> bytes:
    """The string a buffer of n bytes holds after a terminating copy: at most n-1 bytes."""
    if n <= 0:
        return b""
    return _cstr(src)[: n - 1]


def strlen(s: BytesLike) -> int:
    """Number of bytes before the first NUL."""
    return len(_cstr(s))


def strchr(s: BytesLike, c: Union[int, bytes, str]) -> int | None:
    """Index of the first c before the terminator, or None."""
    if isinstance(c, (bytes, str)):
        raw = _raw(c)
        if len(raw) != 1:
            raise ValueError("strchr needs a single character")
        c = raw[0]
    if c == 0:
        return None
    index = _cstr(s).find(bytes((c & 0xFF,)))
    return None if index < 0 else index


def atoi(s: BytesLike) -> int:
    """Value of the leading decimal digits; no sign and no leading spaces."""
    digits = bytes(takewhile(lambda ch: 0x30 <= ch <= 0x39, _raw(s)))
    return int(digits) if digits else 0


def gets(stream: BinaryIO, max: int) -> bytes:
    """Read one line of at most max-1 bytes, keeping the newline or carriage return."""
    line = bytearray()
    while len(line) + 1 < max:
        ch = stream.read(1)
        if not ch:
            break
        line += ch
        if ch in (b"\n", b"\r"):
            break
    return bytes(line)