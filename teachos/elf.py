"""Reading and writing 32-bit ELF file and program headers."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

ELF_MAGIC = 0x464C457F  # "\x7FELF" read as a little-endian word

ELF_PROG_LOAD = 1

ELF_PROG_FLAG_EXEC = 1
ELF_PROG_FLAG_WRITE = 2
ELF_PROG_FLAG_READ = 4


class ElfFormatError(ValueError):
    """The bytes are not a well-formed ELF image."""


@dataclass(frozen=True)
class ElfHeader:
    """The ELF file header."""

    magic: int = ELF_MAGIC
    ident: bytes = bytes(12)
    file_type: int = 0
    machine: int = 0
    version: int = 0
    entry: int = 0
    phoff: int = 0
    shoff: int = 0
    flags: int = 0
    ehsize: int = 0
    phentsize: int = 0
    phnum: int = 0
    shentsize: int = 0
    shnum: int = 0
    shstrndx: int = 0

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<I12sHHIIIIIHHHHHH")
    SIZE: ClassVar[int] = _STRUCT.size

    @classmethod
    def unpack(cls, data: bytes) -> ElfHeader:
        if len(data) < cls.SIZE:
            raise ElfFormatError(f"ELF header needs {cls.SIZE} bytes, got {len(data)}")
        header = cls(*cls._STRUCT.unpack_from(data))
        if header.magic != ELF_MAGIC:
            raise ElfFormatError(f"bad ELF magic {header.magic:#x}")
        return header

    def pack(self) -> bytes:
        if len(self.ident) != 12:
            raise ValueError("ident must be 12 bytes")
        try:
            return self._STRUCT.pack(
                self.magic,
                self.ident,
                self.file_type,
                self.machine,
                self.version,
                self.entry,
                self.phoff,
                self.shoff,
                self.flags,
                self.ehsize,
                self.phentsize,
                self.phnum,
                self.shentsize,
                self.shnum,
                self.shstrndx,
            )
        except struct.error as exc:
            raise ValueError(str(exc)) from exc


@dataclass(frozen=True)
class ProgramHeader:
    """An ELF program (segment) header."""

    kind: int = 0
    off: int = 0
    vaddr: int = 0
    paddr: int = 0
    filesz: int = 0
    memsz: int = 0
    flags: int = 0
    align: int = 0

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<8I")
    SIZE: ClassVar[int] = _STRUCT.size

    @property
    def is_load(self) -> bool:
        return self.kind == ELF_PROG_LOAD

    @property
    def executable(self) -> bool:
        return bool(self.flags & ELF_PROG_FLAG_EXEC)

    @property
    def writable(self) -> bool:
        return bool(self.flags & ELF_PROG_FLAG_WRITE)

    @property
    def readable(self) -> bool:
        return bool(self.flags & ELF_PROG_FLAG_READ)

    @classmethod
    def unpack(cls, data: bytes) -> ProgramHeader:
        if len(data) < cls.SIZE:
            raise ElfFormatError(f"program header needs {cls.SIZE} bytes, got {len(data)}")
        return cls(*cls._STRUCT.unpack_from(data))

    def pack(self) -> bytes:
        try:
            return self._STRUCT.pack(
                self.kind,
                self.off,
                self.vaddr,
                self.paddr,
                self.filesz,
                self.memsz,
                self.flags,
                self.align,
            )
        except struct.error as exc:
            raise ValueError(str(exc)) from exc


def program_headers(data: bytes) -> list[ProgramHeader]:
    """Every program header of an ELF image, in file order."""
    header = ElfHeader.unpack(data)
    view = memoryview(data)
    result = []
    for i in range(header.phnum):
        start = header.phoff + i * ProgramHeader.SIZE
        if start + ProgramHeader.SIZE > len(data):
            raise ElfFormatError(f"program header {i} lies past the end of the image")
        result.append(ProgramHeader.unpack(bytes(view[start:start + ProgramHeader.SIZE])))
    return result