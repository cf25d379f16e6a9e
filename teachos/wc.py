"""Count lines, words and bytes."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import BinaryIO, Iterable

_WHITESPACE = frozenset(b" \r\t\n\v")
_CHUNK = 512


@dataclass(frozen=True)
class WordCount:
    """Line, word and byte totals."""

    lines: int = 0
    words: int = 0
    chars: int = 0


class _Tally:
    def __init__(self) -> None:
        self.lines = 0
        self.words = 0
        self.chars = 0
        self.in_word = False

    def feed(self, chunk: bytes) -> None:
        self.chars += len(chunk)
        self.lines += chunk.count(b"\n")
        for byte in chunk:
            if byte in _WHITESPACE:
                self.in_word = False
            elif not self.in_word:
                self.words += 1
                self.in_word = True

    def result(self) -> WordCount:
        return WordCount(self.lines, self.words, self.chars)


def _count_chunks(chunks: Iterable[bytes]) -> WordCount:
    tally = _Tally()
    for chunk in chunks:
        tally.feed(chunk)
    return tally.result()


def count(data: bytes) -> WordCount:
    """Totals for a byte string."""
    return _count_chunks([bytes(data)])


def count_stream(stream: BinaryIO) -> WordCount:
    """Totals for everything left in a binary stream."""
    return _count_chunks(iter(lambda: stream.read(_CHUNK), b""))


def _report(result: WordCount, name: str) -> None:
    print(f"{result.lines} {result.words} {result.chars} {name}")


def main(argv: list[str] | None = None) -> int:
    """Print counts for each named file, or for standard input when none is named."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        try:
            result = count_stream(sys.stdin.buffer)
        except OSError:
            print("wc: read error")
            return 1
        _report(result, "")
        return 0
    for name in args:
        try:
            handle = open(name, "rb")
        except OSError:
            print(f"wc: cannot open {name}")
            return 1
        with handle:
            try:
                result = count_stream(handle)
            except OSError:
                print("wc: read error")
                return 1
        _report(result, name)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())