import io

import pytest
from hypothesis import given, strategies as st

from teachos.cstrings import (
    atoi,
    gets,
    memcmp,
    memmove,
    safestrcpy,
    strchr,
    strcmp,
    strlen,
    strncmp,
    strncpy,
)

nonul = st.binary().filter(lambda b: b"\0" not in b)


def _sign(x):
    return (x > 0) - (x < 0)


@given(nonul)
def test_strcmp_equal(s):
    assert strcmp(s, s) == 0
    assert strcmp(s + b"\0junk", s) == 0


@given(nonul, nonul)
def test_strcmp_order_matches_bytes(a, b):
    assert _sign(strcmp(a, b)) == _sign((a > b) - (a < b))
    assert _sign(strcmp(a, b)) == -_sign(strcmp(b, a))


def test_strcmp_shorter_is_less():
    assert strcmp(b"abc", b"abcd") < 0
    assert strcmp("abd", "abc") > 0


@given(nonul, nonul, st.integers(0, 40))
def test_strncmp_looks_at_prefix(a, b, n):
    assert _sign(strncmp(a, b, n)) == _sign(strcmp(a[:n], b[:n]))


def test_strncmp_zero_length():
    assert strncmp(b"abc", b"xyz", 0) == 0
    assert strncmp(b"abcx", b"abcy", 3) == 0
    assert strncmp(b"abcx", b"abcy", 4) < 0


@given(st.binary(min_size=4, max_size=4), st.binary(min_size=4, max_size=4))
def test_memcmp_sign(a, b):
    assert _sign(memcmp(a, b, 4)) == _sign((a > b) - (a < b))


def test_memcmp_ignores_nul_and_bounds():
    assert memcmp(b"a\0b", b"a\0c", 3) < 0
    assert memcmp(b"a\0b", b"a\0c", 2) == 0
    with pytest.raises(ValueError):
        memcmp(b"ab", b"abc", 3)


@given(st.binary(min_size=1, max_size=40), st.data())
def test_memmove_copies_source(data, draw):
    n = draw.draw(st.integers(0, len(data)))
    src = draw.draw(st.integers(0, len(data) - n))
    dst = draw.draw(st.integers(0, len(data) - n))
    buf = bytearray(data)
    result = memmove(buf, dst, src, n)
    assert result is buf
    assert bytes(buf[dst:dst + n]) == data[src:src + n]
    assert len(buf) == len(data)


def test_memmove_out_of_range():
    with pytest.raises(ValueError):
        memmove(bytearray(4), 2, 0, 3)


def test_strncpy_pads_and_truncates():
    assert strncpy(b"hi", 5) == b"hi\0\0\0"
    assert strncpy(b"hello", 3) == b"hel"
    assert strncpy(b"x", 0) == b""


@given(nonul, st.integers(1, 30))
def test_safestrcpy_always_fits(s, n):
    out = safestrcpy(s, n)
    assert len(out) <= n - 1
    assert s.startswith(out)


def test_safestrcpy_nonpositive():
    assert safestrcpy(b"abc", 0) == b""


def test_strlen_stops_at_nul():
    assert strlen(b"hello\0world") == len(b"hello")
    assert strlen(b"") == 0


def test_strchr():
    ws = b" \t\r\n\v"
    assert strchr(ws, b"\n") == ws.index(b"\n")
    assert strchr(ws, ord("a")) is None
    assert strchr(ws, 0) is None
    assert strchr(b"ab\0c", b"c") is None


@given(st.integers(0, 10**12))
def test_atoi_roundtrip(n):
    assert atoi(str(n)) == n
    assert atoi(str(n).encode() + b"abc") == n


def test_atoi_no_sign_or_space():
    assert atoi("-5") == 0
    assert atoi(" 7") == 0
    assert atoi("12abc") == 12


def test_gets_reads_one_line():
    stream = io.BytesIO(b"echo hi\nnext\n")
    assert gets(stream, 100) == b"echo hi\n"
    assert gets(stream, 100) == b"next\n"
    assert gets(stream, 100) == b""


def test_gets_respects_max():
    stream = io.BytesIO(b"abcdef\n")
    assert gets(stream, 4) == b"abc"
    assert gets(stream, 1) == b""


def test_gets_stops_at_carriage_return():
    assert gets(io.BytesIO(b"ab\rcd"), 10) == b"ab\r"