"""Single entry point: encode a column set and present the result."""

from __future__ import annotations

from typing import Union

import torch

from .columns import ColumnSet
from .encoder import Columns, ConfigurationCodes, encode
from .presenter import ConfigurationFactor, full_factor, present, to_index

__all__ = ["configurations"]


def configurations(
    columns: Columns,
    *,
    factor: bool = True,
    complete: bool = False,
    dtype: torch.dtype | None = None,
) -> Union[ConfigurationCodes, ConfigurationFactor]:
    """Identify the joint configuration of every row of *columns*.

    Parameters
    ----------
    columns:
        A :class:`~bncfg.columns.ColumnSet` or a sequence of
        :class:`~bncfg.columns.CategoricalColumn`, least significant first.
    factor:
        Return a :class:`ConfigurationFactor` (default) instead of 1-based
        integer indices.
    complete:
        With ``factor=True`` keep every possible configuration as a level,
        named after the column levels, instead of the observed ones only.
        Has no effect on the index form.
    dtype:
        Optional override of the global code dtype.

    Returns
    -------
    ConfigurationCodes | ConfigurationFactor
    """
    cols = ColumnSet.coerce(columns)
    codes = encode(cols, dtype=dtype)
    if not factor:
        return to_index(codes)
    if complete:
        return full_factor(codes, cols)
    return present(codes, as_factor=True)
