"""Tests for index and factor presentations of configuration codes."""

from __future__ import annotations

import logging

import pytest
import torch
from hypothesis import given, strategies as st

import bncfg.presenter as presenter
from bncfg import MISSING
from bncfg.columns import CategoricalColumn, ColumnSet
from bncfg.encoder import ConfigurationCodes, encode
from bncfg.errors import ConfigurationError, ConfigurationOverflowError, InvalidShapeError
from bncfg.presenter import ConfigurationFactor, full_factor, present, to_factor, to_index


@st.composite
def raw_codes(draw, max_code: int = 50, max_rows: int = 40) -> ConfigurationCodes:
    """Random 0-based codes with missing rows."""
    cells = draw(st.lists(st.one_of(st.none(), st.integers(min_value=0, max_value=max_code)),
                          max_size=max_rows))
    missing = torch.tensor([c is None for c in cells], dtype=torch.bool)
    values = torch.tensor([MISSING if c is None else c for c in cells], dtype=torch.int32)
    return ConfigurationCodes(values, missing)


def two_parents() -> ColumnSet:
    a = CategoricalColumn.from_sequence([1, 2, 1, None], 2, levels=["a1", "a2"], name="A")
    b = CategoricalColumn.from_sequence([1, 1, 2, 1], 2, levels=["b1", "b2"], name="B")
    return ColumnSet.from_columns(a, b)


# -----------------------------------------------------------------------------
# Concrete scenarios
# -----------------------------------------------------------------------------


def test_index_form_of_two_parents():
    idx = present(encode(two_parents()), as_factor=False)
    assert isinstance(idx, ConfigurationCodes)
    assert idx.base == 1
    assert idx.tolist() == [1, 2, 3, None]
    assert idx.values[3].item() == MISSING


def test_factor_form_of_two_parents():
    fac = present(encode(two_parents()), as_factor=True)
    assert isinstance(fac, ConfigurationFactor)
    assert fac.tolist() == [1, 2, 3, None]
    assert fac.levels == ("0", "1", "2")
    assert fac.codes.tolist() == [0, 1, 2]
    assert fac.nlevels == 3
    assert fac.level_names() == ["0", "1", "2", None]


def test_single_column_index_form():
    codes = encode([CategoricalColumn.from_sequence([3, 1, 2], 3)])
    assert to_index(codes).tolist() == [3, 1, 2]


def test_factor_levels_are_dense_over_sparse_codes():
    codes = ConfigurationCodes(
        torch.tensor([17, 3, MISSING, 17, 42], dtype=torch.int32),
        torch.tensor([False, False, True, False, False]),
    )
    fac = to_factor(codes)
    assert fac.tolist() == [2, 1, None, 2, 3]
    assert fac.levels == ("3", "17", "42")
    assert fac.labels.dtype == torch.int32


def test_all_missing_gives_empty_factor():
    codes = ConfigurationCodes(torch.full((3,), MISSING, dtype=torch.int32), torch.ones(3, dtype=torch.bool))
    fac = to_factor(codes)
    assert fac.nlevels == 0
    assert fac.tolist() == [None, None, None]


def test_index_form_requires_raw_codes():
    idx = to_index(encode(two_parents()))
    with pytest.raises(ValueError):
        to_index(idx)


def test_index_form_detects_overflow():
    codes = ConfigurationCodes(torch.tensor([2 ** 31 - 1], dtype=torch.int32), torch.tensor([False]))
    with pytest.raises(ConfigurationOverflowError):
        to_index(codes)


# -----------------------------------------------------------------------------
# Full configuration space
# -----------------------------------------------------------------------------


def test_full_factor_names_every_configuration():
    cols = two_parents()
    fac = full_factor(encode(cols), cols)
    assert fac.levels == ("a1:b1", "a2:b1", "a1:b2", "a2:b2")
    assert fac.tolist() == [1, 2, 3, None]
    assert fac.codes.tolist() == [0, 1, 2, 3]
    assert fac.level_names() == ["a1:b1", "a2:b1", "a1:b2", None]


def test_full_factor_custom_separator_and_default_level_names():
    a = CategoricalColumn.from_sequence([2, 1], 2)
    b = CategoricalColumn.from_sequence([3, 3], 3)
    fac = full_factor(encode([a, b]), [a, b], sep="/")
    assert fac.nlevels == 6
    assert fac.levels[-1] == "2/3"
    assert fac.level_names() == ["2/3", "1/3"]


def test_full_factor_rejects_mismatched_rows_and_codes():
    cols = two_parents()
    short = CategoricalColumn.from_sequence([1], 2)
    with pytest.raises(InvalidShapeError):
        full_factor(encode([short]), cols)

    foreign = ConfigurationCodes(torch.tensor([0, 9, 0, 0], dtype=torch.int32), torch.zeros(4, dtype=torch.bool))
    with pytest.raises(ConfigurationError):
        full_factor(foreign, cols)


def test_full_factor_warns_on_huge_space(monkeypatch):
    monkeypatch.setattr(presenter, "FULL_FACTOR_WARN_LEVELS", 2)
    col = CategoricalColumn.from_sequence([1], 3)
    with pytest.warns(UserWarning, match="configuration levels"):
        full_factor(encode([col]), [col])


# -----------------------------------------------------------------------------
# Properties
# -----------------------------------------------------------------------------


@given(raw_codes())
def test_index_form_shifts_by_one(codes: ConfigurationCodes):
    idx = to_index(codes)
    assert idx.tolist() == [None if c is None else c + 1 for c in codes.tolist()]
    assert torch.all(idx.values[idx.missing] == MISSING)


@given(raw_codes())
def test_factor_labels_preserve_order(codes: ConfigurationCodes):
    fac = to_factor(codes)
    pairs = [(c, lab) for c, lab in zip(codes.tolist(), fac.tolist()) if c is not None]
    assert all(lab is None for c, lab in zip(codes.tolist(), fac.tolist()) if c is None)

    distinct = sorted({c for c, _ in pairs})
    assert {lab for _, lab in pairs} == set(range(1, len(distinct) + 1))
    for (ca, la), (cb, lb) in zip(pairs, pairs[1:]):
        assert (ca < cb) == (la < lb)
        assert (ca == cb) == (la == lb)
    assert fac.levels == tuple(str(c) for c in distinct)


@given(raw_codes())
def test_presenters_return_fresh_tensors(codes: ConfigurationCodes):
    values, missing = codes.values.clone(), codes.missing.clone()
    idx = to_index(codes)
    fac = to_factor(codes)
    assert torch.equal(codes.values, values)
    assert torch.equal(codes.missing, missing)
    assert idx.values.data_ptr() != codes.values.data_ptr() or len(codes) == 0
    assert fac.labels.data_ptr() != codes.values.data_ptr() or len(codes) == 0


@given(raw_codes())
def test_presentation_is_deterministic(codes: ConfigurationCodes):
    assert torch.equal(to_factor(codes).labels, to_factor(codes).labels)
    assert torch.equal(to_index(codes).values, to_index(codes).values)


def test_factor_form_requires_raw_codes():
    idx = to_index(encode(two_parents()))
    with pytest.raises(ValueError):
        to_factor(idx)
    with pytest.raises(ValueError):
        present(idx, as_factor=True)


def test_present_accepts_sentinel_sequences():
    codes = ConfigurationCodes.from_sentinel([0, 1, 2, MISSING])
    assert present(codes, as_factor=False).tolist() == [1, 2, 3, None]
    assert present(codes, as_factor=True).tolist() == [1, 2, 3, None]


def test_index_form_logs_summary(caplog):
    with caplog.at_level(logging.DEBUG, logger="bncfg.presenter"):
        to_index(encode(two_parents()))
    assert "index form of 4 rows (1 missing)" in caplog.text
