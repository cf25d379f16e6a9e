"""Models of a small teaching operating system: paging, ELF headers, locks,
system call and trap handling, a shell parser, a heap allocator and wc."""

__version__ = "0.1.0"