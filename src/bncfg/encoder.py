"""Mixed-radix encoding of joint factor configurations.

Every row of a :class:`~bncfg.columns.ColumnSet` is mapped to one integer

    code = Σ_j (value_j − 1) · weight[j]      with weight[0] = 1,
                                                 weight[j] = weight[j−1] · L_{j−1}

i.e. the column-major (first column varies fastest) linear index of the
row's level tuple inside the ``L_0 × … × L_{N−1}`` configuration space.  A row
with at least one missing cell maps to :data:`~bncfg.config.MISSING`.

The implementation is vectorised over rows and walks the columns once:

1.  Copy the column into a reusable digit buffer and zero its missing cells.
2.  Add ``weight[j]`` times the digits to the output buffer in place.
3.  OR the column's missing mask into the row mask.
4.  Overwrite rows with any missing cell by the sentinel.

Arithmetic happens directly in the code dtype.  The configuration space is
checked against that dtype beforehand, so no partial sum can wrap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import torch
from torch import Tensor

from .columns import CategoricalColumn, ColumnSet
from .config import MISSING, max_code, resolve_dtype
from .errors import ConfigurationError, ConfigurationOverflowError, InvalidLevelError, InvalidShapeError

__all__ = ["ConfigurationCodes", "radix_weights", "encode", "decode"]

logger = logging.getLogger(__name__)

Columns = Union[ColumnSet, CategoricalColumn, Sequence[CategoricalColumn]]


@dataclass(frozen=True, eq=False)
class ConfigurationCodes:
    """One configuration code per row.

    ``base`` is ``0`` for raw codes as produced by :func:`encode` and ``1``
    for the shifted index form returned by
    :func:`bncfg.presenter.to_index`.  Missing rows hold the sentinel in
    ``values`` and ``True`` in ``missing``.
    """

    values: Tensor  # (R,) int32 / int64
    missing: Tensor  # (R,) bool
    base: int = 0

    def __post_init__(self):
        if self.values.dim() != 1 or self.missing.shape != self.values.shape:
            raise InvalidShapeError("Codes and missing mask must be 1-D tensors of equal length")
        if self.missing.dtype != torch.bool:
            raise TypeError("Missing mask must be a bool tensor")
        if self.values.is_floating_point() or self.values.dtype == torch.bool:
            raise TypeError(f"Codes must be integers, got {self.values.dtype}")
        if self.base not in (0, 1):
            raise ValueError(f"Code base must be 0 or 1, got {self.base}")
        bad = ~self.missing & (self.values < self.base)
        if torch.any(bad):
            row = int(torch.nonzero(bad, as_tuple=False)[0].item())
            raise ConfigurationError(
                f"code {int(self.values[row].item())} at row {row} is below the code base {self.base}"
            )

    @classmethod
    def from_sentinel(cls, values: Union[Tensor, Sequence[int]], base: int = 0) -> "ConfigurationCodes":
        """Wrap integer codes where :data:`MISSING` marks a missing row."""
        t = values if isinstance(values, Tensor) else torch.as_tensor(list(values), dtype=torch.int64)
        if t.dtype == torch.bool or t.is_floating_point() or t.is_complex():
            raise TypeError(f"Codes must be integers, got {t.dtype}")
        return cls(t.clone(), t == MISSING, base)

    @property
    def dtype(self) -> torch.dtype:
        return self.values.dtype

    def __len__(self) -> int:
        return int(self.values.shape[0])

    def to_sentinel(self) -> Tensor:
        """Fresh integer tensor with :data:`MISSING` at missing rows."""
        return torch.where(self.missing, torch.full_like(self.values, MISSING), self.values)

    def tolist(self) -> List[Optional[int]]:
        return [None if m else int(v) for v, m in zip(self.values.tolist(), self.missing.tolist())]


# -----------------------------------------------------------------------------
# Radix weights
# -----------------------------------------------------------------------------

def radix_weights(
    nlevels: Sequence[int],
    *,
    dtype: torch.dtype | None = None,
    device: torch.device | str | None = None,
) -> Tensor:
    """Cumulative products of the level counts, ``weight[0] = 1``.

    Parameters
    ----------
    nlevels:
        Level count ``L_j ≥ 1`` of every column, least significant first.
    dtype:
        Optional override of the global code dtype used for the overflow
        check.
    device:
        Device of the returned tensor; defaults to the CPU.

    Returns
    -------
    torch.Tensor
        ``(N,)`` int64 tensor with ``weight[j] = Π_{k<j} L_k``.

    Raises
    ------
    ConfigurationOverflowError
        If ``Π L_j`` is larger than :func:`bncfg.config.max_code`.  The
        1-based index form reaches ``Π L_j`` itself, hence the bound.
    """
    if len(nlevels) == 0:
        raise InvalidShapeError("At least one column is required")

    weights: List[int] = []
    total = 1
    for j, n in enumerate(nlevels):
        n = int(n)
        if n < 1:
            raise InvalidLevelError(f"column {j}: number of levels must be at least 1, got {n}", column=j)
        weights.append(total)
        total *= n

    limit = max_code(dtype)
    if total > limit:
        raise ConfigurationOverflowError(total, limit)

    return torch.tensor(weights, dtype=torch.int64, device=device)


# -----------------------------------------------------------------------------
# Encoder
# -----------------------------------------------------------------------------

def encode(columns: Columns, *, dtype: torch.dtype | None = None) -> ConfigurationCodes:
    """Configuration code of every row of *columns*.

    Pure function of its input: nothing is cached between calls and the
    column buffers are only read.  Codes are accumulated column by column
    into the output buffer itself, so the only temporary is one digit buffer
    of ``R`` cells reused for every column.
    """
    cols = ColumnSet.coerce(columns)
    d = resolve_dtype(dtype)
    device = cols[0].values.device
    weights = radix_weights(cols.nlevels, dtype=d, device=device).tolist()

    codes = torch.zeros(cols.nrows, dtype=d, device=device)
    row_missing = torch.zeros(cols.nrows, dtype=torch.bool, device=device)
    digits = torch.empty_like(codes)

    for col, w in zip(cols, weights):
        # Π L_j fits the code dtype, so every partial sum does too
        digits.copy_(col.values)
        digits.masked_fill_(col.missing, 1).sub_(1)
        codes.add_(digits, alpha=w)
        row_missing.logical_or_(col.missing)

    codes.masked_fill_(row_missing, MISSING)

    logger.debug(
        "encoded %d rows over %d columns (%d configurations, %d missing rows)",
        cols.nrows,
        cols.ncols,
        cols.nconfigurations,
        int(row_missing.sum().item()),
    )
    return ConfigurationCodes(codes, row_missing, base=0)


def decode(codes: ConfigurationCodes, nlevels: Sequence[int]) -> Tuple[Tensor, Tensor]:
    """Recover the 1-based level tuple behind every code.

    Returns
    -------
    tuple[torch.Tensor, torch.Tensor]
        ``(levels, missing)`` where ``levels`` has shape ``(R, N)`` and holds
        :data:`MISSING` in every cell of a missing row.
    """
    weights = radix_weights(nlevels, dtype=torch.int64, device=codes.values.device)
    total = int(weights[-1].item()) * int(nlevels[-1])

    raw = codes.values.to(torch.int64) - codes.base
    raw = torch.where(codes.missing, torch.zeros_like(raw), raw)
    bad = ~codes.missing & ((raw < 0) | (raw >= total))
    if torch.any(bad):
        row = int(torch.nonzero(bad, as_tuple=False)[0].item())
        raise ConfigurationError(
            f"code {int(codes.values[row].item())} at row {row} is outside the configuration space of size {total}"
        )

    digits = []
    rest = raw
    for n in nlevels:
        digits.append(rest % int(n) + 1)
        rest = torch.div(rest, int(n), rounding_mode="floor")

    levels = torch.stack(digits, dim=1)
    levels = torch.where(codes.missing.unsqueeze(1), torch.full_like(levels, MISSING), levels)
    return levels, codes.missing.clone()
