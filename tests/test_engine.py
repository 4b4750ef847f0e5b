# tests/test_engine.py
"""
Decimal table engine, fast-doubling engine and the compute() façade.

Run: pytest -v
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from sympy import fibonacci

from fibengine import config
from fibengine.doubling import fib_bounded, fits_native, max_exact_index
from fibengine.engine import (
    DEFAULT_MAX_INDEX,
    PROFILE_MAX_INDEX_LIMIT,
    FibResult,
    compute,
    compute_bounded,
    compute_range,
    configured_max_index,
)
from fibengine.table import build_table, fib_digits
from fibengine.utility import CapacityExceeded, InvalidInput, ResourceExhaustion, UserInputError
from fibengine.workspace import ensure_workspace_seeded

KNOWN_VALUES = [
    (0, "0"),
    (1, "1"),
    (2, "1"),
    (3, "2"),
    (10, "55"),
    (20, "6765"),
    (50, "12586269025"),
    (92, "7540113804746346429"),
    (93, "12200160415121876738"),
    (100, "354224848179261915075"),
]

KNOWN_IDS = [f"F{k}" for k, _ in KNOWN_VALUES]


# ---------- decimal engine ----------------------------------------------------

@pytest.mark.parametrize("k,expected", KNOWN_VALUES, ids=KNOWN_IDS)
def test_compute_known_values(k, expected):
    r = compute(k)
    assert r == FibResult(k, expected)
    assert r.length == len(expected)
    assert str(r) == expected


def test_compute_100_has_21_digits():
    assert compute(100).length == 21


def test_recurrence_over_whole_supported_range():
    results = compute_range(0, DEFAULT_MAX_INDEX)
    assert [r.index for r in results] == list(range(DEFAULT_MAX_INDEX + 1))
    assert results[0].digits == "0"
    assert results[1].digits == "1"
    for i in range(2, len(results)):
        assert int(results[i].digits) == int(results[i - 1].digits) + int(results[i - 2].digits), i


def test_no_leading_zeros_in_results():
    for r in compute_range(0, 300):
        assert r.digits == "0" or not r.digits.startswith("0")


@pytest.mark.parametrize("k", [0, 1, 2, 37, 255, 256, 499, 500])
def test_compute_matches_sympy(k):
    assert compute(k).digits == str(fibonacci(k))


def test_compute_is_idempotent():
    assert compute(321) == compute(321) == compute(321)


def test_compute_above_max_index_is_capacity_error():
    with pytest.raises(CapacityExceeded):
        compute(DEFAULT_MAX_INDEX + 1)
    with pytest.raises(CapacityExceeded):
        compute(20, max_index=19)


def test_max_index_comes_from_runtime(apply_settings):
    apply_settings({"ENGINE": {"MAX_INDEX": 30}})
    assert configured_max_index() == 30
    assert compute(30).digits == "832040"
    with pytest.raises(CapacityExceeded):
        compute(31)


def test_explicit_max_index_overrides_runtime(apply_settings):
    apply_settings({"ENGINE": {"MAX_INDEX": 30}})
    assert compute(1000, max_index=1000).length == 209


def test_bad_runtime_max_index_is_user_error(apply_settings):
    apply_settings({"ENGINE": {"MAX_INDEX": "lots"}})
    with pytest.raises(UserInputError):
        compute(3)


@pytest.mark.parametrize("bad", [-1, 2.0, "10", None, True])
def test_compute_rejects_non_indices(bad):
    with pytest.raises(InvalidInput):
        compute(bad)


def test_compute_range_rejects_reversed_bounds():
    with pytest.raises(InvalidInput):
        compute_range(10, 3)


def test_compute_range_subset():
    assert [r.digits for r in compute_range(10, 13)] == ["55", "89", "144", "233"]


def test_concurrent_calls_are_independent():
    ks = list(range(0, 500, 7)) * 3
    with ThreadPoolExecutor(max_workers=8) as pool:
        got = list(pool.map(lambda k: compute(k, max_index=500).digits, ks))
    assert got == [str(fibonacci(k)) for k in ks]


# ---------- table builder -----------------------------------------------------

def test_table_small_indices_skip_the_table():
    assert fib_digits(0) == (b"0", 1)
    assert fib_digits(1) == (b"1", 1)


def test_table_entries_are_little_endian():
    table = build_table(12)
    assert len(table) == 13
    assert table[12] == b"441"  # F(12) = 144
    assert fib_digits(12) == (b"441", 3)


def test_table_reports_progress_in_index_order():
    seen = []
    build_table(6, progress=lambda i, k: seen.append((i, k)))
    assert seen == [(2, 6), (3, 6), (4, 6), (5, 6), (6, 6)]


@pytest.mark.parametrize("k", [2, 3, 12, 93, 300])
def test_fib_digits_matches_full_table(k):
    expected = build_table(k)[k]
    assert fib_digits(k) == (expected, len(expected))


def test_fib_digits_reports_progress_like_the_table():
    seen = []
    fib_digits(5, progress=lambda i, k: seen.append(i))
    assert seen == [2, 3, 4, 5]


def test_packaged_profiles_stay_within_servable_range():
    ensure_workspace_seeded()
    names = config.list_all_profiles()
    assert names
    for name in names:
        max_index = config.load_settings(name).as_dict()["ENGINE"]["MAX_INDEX"]
        assert max_index <= PROFILE_MAX_INDEX_LIMIT, name


def test_table_capacity_checked_before_allocation():
    with pytest.raises(CapacityExceeded):
        build_table(10**12, max_index=500)


def test_table_memory_error_becomes_resource_exhaustion(monkeypatch):
    import fibengine.table as table_mod

    def boom(*a, **kw):
        raise MemoryError

    monkeypatch.setattr(table_mod, "add_digits", boom)
    with pytest.raises(ResourceExhaustion) as ei:
        table_mod.fib_digits(5)
    assert isinstance(ei.value.__cause__, MemoryError)


# ---------- fast doubling -----------------------------------------------------

def test_bounded_50_matches_decimal_engine():
    assert compute_bounded(50) == 12586269025
    assert compute_bounded(50) == int(compute(50).digits)


@pytest.mark.parametrize("k", list(range(0, 93)))
def test_bounded_exact_up_to_92(k):
    assert fib_bounded(k) == fibonacci(k)


@pytest.mark.parametrize("k", [93, 94, 100, 200, 500, 10**6])
def test_bounded_wraps_modulo_width(k):
    v = int(fibonacci(k)) % 2**64
    if v >= 2**63:
        v -= 2**64
    assert fib_bounded(k) == v
    assert fib_bounded(k, signed=False) == int(fibonacci(k)) % 2**64


def test_bounded_93_wraps_negative_when_signed():
    assert fib_bounded(93) < 0
    assert fib_bounded(93, signed=False) == 12200160415121876738


def test_bounded_other_widths():
    assert fib_bounded(24, bits=16, signed=False) == 46368
    assert fib_bounded(25, bits=16, signed=False) == 75025 % 2**16
    assert fib_bounded(20, bits=32) == 6765


def test_bounded_rejects_bad_input():
    with pytest.raises(InvalidInput):
        fib_bounded(-3)
    with pytest.raises(InvalidInput):
        fib_bounded(2**63)
    with pytest.raises(InvalidInput):
        fib_bounded(5, bits=1)


def test_bounded_width_from_runtime(apply_settings):
    apply_settings({"ENGINE": {"NATIVE_BITS": 32, "SIGNED": False}})
    assert compute_bounded(48) == int(fibonacci(48)) % 2**32


def test_max_exact_index():
    assert max_exact_index(64, True) == 92
    assert max_exact_index(64, False) == 93
    assert fits_native(92)
    assert not fits_native(93)
    assert fits_native(93, signed=False)
