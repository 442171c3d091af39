# -*- coding: utf-8 -*-
import os
import random

import pytest

from xorack.errors import ErrorCode, InsufficientOperands, LengthMismatch
from xorack.stamp import StampResult, combine, is_zero, zero_stamp


@pytest.fixture(autouse=True)
def _fix_seed():
    random.seed(1337)


def _h(s: str) -> bytes:
    return bytes.fromhex(s)


# ==========================
# Известные значения
# ==========================

@pytest.mark.parametrize(
    "operands,expected_hex,acked",
    [
        (["00", "00"], "00", True),
        (["10", "01"], "11", False),
        (["10", "01", "11"], "00", True),
        (["ff00", "00ff"], "ffff", False),
        (["0102", "0102"], "0000", True),
    ],
)
def test_combine_known_values(operands, expected_hex, acked):
    result = combine(*[_h(o) for o in operands])
    assert result == StampResult(stamp=_h(expected_hex), acked=acked)
    assert result.hex() == expected_hex


# ==========================
# Алгебраические свойства
# ==========================

def test_commutative_and_associative():
    for size in (1, 2, 16, 33):
        a, b, c = (os.urandom(size) for _ in range(3))
        assert combine(a, b) == combine(b, a)
        left = combine(combine(a, b).stamp, c)
        right = combine(a, combine(b, c).stamp)
        assert left == right == combine(a, b, c)


def test_self_inverse():
    for size in (1, 8, 32):
        a = os.urandom(size)
        result = combine(a, a)
        assert result.acked is True
        assert result.stamp == bytes(size)


def test_xor_in_and_out_in_any_order_returns_to_zero():
    stamps = [bytes([random.randint(1, 255)]) * 4 for _ in range(9)]
    shuffled = stamps[:]
    random.shuffle(shuffled)
    assert combine(*stamps, *shuffled).acked is True


# ==========================
# Ошибки
# ==========================

@pytest.mark.parametrize("args", [(_h("00"), _h("0001")), (_h("0001"), _h("00"))])
def test_length_mismatch_either_order(args):
    with pytest.raises(LengthMismatch) as ei:
        combine(*args)
    assert ei.value.code is ErrorCode.LENGTH_MISMATCH
    assert str(ei.value) == "Buffer lengths are not equal"


def test_length_mismatch_reports_first_offender():
    with pytest.raises(LengthMismatch) as ei:
        combine(_h("0102"), _h("0304"), _h("05"), _h("060708"))
    assert (ei.value.expected, ei.value.actual) == (2, 1)


@pytest.mark.parametrize("args", [(), (_h("01"),)])
def test_insufficient_operands(args):
    with pytest.raises(InsufficientOperands) as ei:
        combine(*args)
    assert str(ei.value) == "At least two buffers expected"
    assert ei.value.to_dict()["count"] == len(args)


def test_rejects_non_bytes():
    with pytest.raises(TypeError):
        combine("01", b"\x01")


# ==========================
# Чистота и нулевые буферы
# ==========================

def test_inputs_are_not_mutated():
    a = bytearray(b"\x10\x20")
    b = bytearray(b"\x01\x02")
    result = combine(a, b)
    assert a == bytearray(b"\x10\x20") and b == bytearray(b"\x01\x02")
    assert isinstance(result.stamp, bytes)


def test_accepts_memoryview():
    assert combine(memoryview(b"\x0f"), b"\xf0").stamp == b"\xff"


@pytest.mark.parametrize(
    "buf,expected",
    [(b"", True), (b"\x00", True), (bytes(64), True), (b"\x00\x01", False), (bytearray(b"\x80"), False)],
)
def test_is_zero(buf, expected):
    assert is_zero(buf) is expected


def test_zero_stamp():
    assert zero_stamp(3) == b"\x00\x00\x00"
    with pytest.raises(ValueError):
        zero_stamp(-1)
