"""Output representations of configuration codes.

Raw codes from :func:`bncfg.encoder.encode` are 0-based.  Callers consume them
in one of two forms:

* an *index* – every code shifted by one so it can index 1-based arrays;
* a *factor* – dense labels ``1..K`` over the ``K`` distinct configurations
  actually observed, with the codes themselves as level labels.

:func:`full_factor` additionally builds a factor over the *whole*
configuration space, labelling each level by the level names of its
columns.

Every function returns freshly allocated tensors; the input codes are never
modified.
"""

from __future__ import annotations

import itertools
import logging
import warnings
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import torch
from torch import Tensor

from .columns import CategoricalColumn, ColumnSet
from .config import FULL_FACTOR_WARN_LEVELS, MISSING, max_code
from .encoder import ConfigurationCodes
from .errors import ConfigurationError, ConfigurationOverflowError, InvalidShapeError

__all__ = ["ConfigurationFactor", "to_index", "to_factor", "full_factor", "present"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ConfigurationFactor:
    """Categorical view of configuration codes.

    ``labels[i]`` is the 1-based level of row *i* (sentinel when missing),
    ``levels[k - 1]`` the name of level *k* and ``codes[k - 1]`` the raw
    configuration code behind it.
    """

    labels: Tensor  # (R,)
    missing: Tensor  # (R,) bool
    levels: Tuple[str, ...]
    codes: Tensor  # (K,) int64

    def __post_init__(self):
        if self.labels.shape != self.missing.shape:
            raise InvalidShapeError("Labels and missing mask must have equal shape")
        if len(self.levels) != self.codes.shape[0]:
            raise InvalidShapeError(f"{len(self.levels)} level names for {self.codes.shape[0]} level codes")

    @property
    def nlevels(self) -> int:
        return len(self.levels)

    def __len__(self) -> int:
        return int(self.labels.shape[0])

    def tolist(self) -> List[Optional[int]]:
        return [None if m else int(v) for v, m in zip(self.labels.tolist(), self.missing.tolist())]

    def level_names(self) -> List[Optional[str]]:
        """Level name of every row, ``None`` for missing rows."""
        return [None if m else self.levels[v - 1] for v, m in zip(self.labels.tolist(), self.missing.tolist())]


# -----------------------------------------------------------------------------
# Presentations
# -----------------------------------------------------------------------------

def _require_raw(codes: ConfigurationCodes) -> None:
    if codes.base != 0:
        raise ValueError("Expected raw 0-based codes as returned by encode()")


def to_index(codes: ConfigurationCodes) -> ConfigurationCodes:
    """Shift every non-missing code by one; missing rows keep the sentinel."""
    _require_raw(codes)
    present_mask = ~codes.missing
    limit = max_code(codes.dtype)
    if torch.any(present_mask & (codes.values >= limit)):
        raise ConfigurationOverflowError(int(codes.values[present_mask].max().item()) + 1, limit)

    shifted = torch.where(codes.missing, torch.full_like(codes.values, MISSING), codes.values + 1)
    logger.debug("index form of %d rows (%d missing)", len(codes), int(codes.missing.sum().item()))
    return ConfigurationCodes(shifted, codes.missing.clone(), base=1)


def to_factor(codes: ConfigurationCodes) -> ConfigurationFactor:
    """Dense factor over the configurations actually observed.

    The distinct non-missing codes are sorted ascending and numbered
    ``1..K`` in that order, so labels preserve the order of the codes.
    """
    _require_raw(codes)
    present_mask = ~codes.missing
    distinct, inverse = torch.unique(codes.values[present_mask], sorted=True, return_inverse=True)

    labels = torch.full_like(codes.values, MISSING)
    labels[present_mask] = (inverse + 1).to(labels.dtype)

    levels = tuple(str(c) for c in distinct.tolist())
    logger.debug("factor with %d levels over %d rows", len(levels), len(codes))
    return ConfigurationFactor(labels, codes.missing.clone(), levels, distinct.to(torch.int64))


def full_factor(
    codes: ConfigurationCodes,
    columns: Union[ColumnSet, Sequence[CategoricalColumn]],
    *,
    sep: str = ":",
) -> ConfigurationFactor:
    """Factor over *all* ``Π L_j`` configurations of *columns*.

    Level ``k`` corresponds to raw code ``k − 1`` and is named by joining the
    level names of its columns with *sep*, the first column varying fastest
    (``"a1:b1", "a2:b1", "a1:b2", …``).  Unobserved configurations are kept
    as empty levels.
    """
    _require_raw(codes)
    cols = ColumnSet.coerce(columns)
    if len(codes) != cols.nrows:
        raise InvalidShapeError(f"{len(codes)} codes for {cols.nrows} rows")

    total = cols.nconfigurations
    present_mask = ~codes.missing
    raw = codes.values.to(torch.int64)
    if torch.any(present_mask & ((raw < 0) | (raw >= total))):
        raise ConfigurationError(f"codes do not belong to a configuration space of size {total}")

    if total > FULL_FACTOR_WARN_LEVELS and total > len(codes):
        warnings.warn(
            f"Materialising {total} configuration levels for {len(codes)} rows; "
            "consider to_factor() which keeps observed configurations only.",
            stacklevel=2,
        )

    names = [
        sep.join(reversed(combo))
        for combo in itertools.product(*(col.level_names() for col in reversed(cols.columns)))
    ]
    labels = torch.where(codes.missing, torch.full_like(codes.values, MISSING), codes.values + 1)
    return ConfigurationFactor(
        labels, codes.missing.clone(), tuple(names), torch.arange(total, dtype=torch.int64, device=codes.values.device)
    )


def present(codes: ConfigurationCodes, as_factor: bool) -> Union[ConfigurationCodes, ConfigurationFactor]:
    """Index form (``as_factor=False``) or observed-level factor (``True``)."""
    if as_factor:
        return to_factor(codes)
    return to_index(codes)
