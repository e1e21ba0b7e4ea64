"""Categorical columns and ordered column sets.

A categorical column is stored the way statistical runtimes store factors: a
flat buffer of 1-based *level indices* plus the number of admissible levels.
Missing cells are tagged explicitly through a boolean ``missing`` mask that
travels next to the integer buffer; the integer buffer additionally holds the
:data:`bncfg.config.MISSING` sentinel at those positions so data can be
exchanged with sentinel-based hosts without a conversion step.

The order of the columns inside a :class:`ColumnSet` matters: the first column
is the least significant digit of the mixed-radix configuration code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Hashable, Iterator, Optional, Sequence, Tuple, Union

import numpy as np
import torch
from torch import Tensor

from .config import MISSING
from .errors import InvalidLevelError, InvalidShapeError

__all__ = ["CategoricalColumn", "ColumnSet"]

logger = logging.getLogger(__name__)

ArrayLike = Union[Tensor, np.ndarray, Sequence[int]]


# -----------------------------------------------------------------------------
# Helper utilities
# -----------------------------------------------------------------------------

def _as_index_tensor(x: ArrayLike) -> Tensor:
    """Convert *x* to a flat int64 tensor without boxing individual cells."""
    if isinstance(x, Tensor):
        t = x
    elif isinstance(x, np.ndarray):
        if x.dtype.kind not in "iu":
            raise TypeError(f"Level indices must be integers, got numpy dtype {x.dtype}")
        t = torch.from_numpy(np.ascontiguousarray(x))
    else:
        t = torch.as_tensor(list(x), dtype=torch.int64)

    if t.dtype == torch.bool or t.is_floating_point() or t.is_complex():
        raise TypeError(f"Level indices must be integers, got {t.dtype}")
    if t.dim() != 1:
        raise InvalidShapeError(f"A categorical column must be 1-dimensional, got shape {tuple(t.shape)}")
    return t.to(torch.int64)


# -----------------------------------------------------------------------------
# Main data classes
# -----------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class CategoricalColumn:
    """One factor: 1-based level indices with an explicit missing mask.

    ``missing`` may be omitted, in which case cells equal to
    :data:`~bncfg.config.MISSING` are treated as missing.  Non-missing cells
    must lie in ``[1, nlevels]``.
    """

    values: Tensor  # (R,) int64 level indices
    nlevels: int
    missing: Optional[Tensor] = None  # (R,) bool
    levels: Optional[Tuple[str, ...]] = None
    name: Optional[str] = None

    # the dataclass is frozen – we must use __setattr__ in __post_init__
    def __post_init__(self):
        values = _as_index_tensor(self.values)
        nlevels = int(self.nlevels)
        if nlevels < 1:
            raise InvalidLevelError(
                f"column {self.label}: number of levels must be at least 1, got {nlevels}",
                column=self.name,
            )

        if self.missing is None:
            missing = values == MISSING
        else:
            missing = torch.as_tensor(self.missing, dtype=torch.bool, device=values.device)
            if missing.shape != values.shape:
                raise InvalidShapeError(
                    f"column {self.label}: missing mask has shape {tuple(missing.shape)}, "
                    f"values have shape {tuple(values.shape)}"
                )

        bad = ~missing & ((values < 1) | (values > nlevels))
        if torch.any(bad):
            row = int(torch.nonzero(bad, as_tuple=False)[0].item())
            raise InvalidLevelError(
                f"column {self.label}: level index {int(values[row].item())} at row {row} "
                f"is outside [1, {nlevels}]",
                column=self.name,
                row=row,
            )

        levels = self.levels
        if levels is not None:
            levels = tuple(str(lvl) for lvl in levels)
            if len(levels) != nlevels:
                raise InvalidLevelError(
                    f"column {self.label}: {len(levels)} level names given for {nlevels} levels",
                    column=self.name,
                )

        object.__setattr__(self, "values", torch.where(missing, torch.full_like(values, MISSING), values))
        object.__setattr__(self, "nlevels", nlevels)
        object.__setattr__(self, "missing", missing)
        object.__setattr__(self, "levels", levels)

    # ------------------------------------------------------------------
    # Smart constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_sequence(
        cls,
        seq: Sequence[Optional[int]],
        nlevels: int,
        *,
        levels: Optional[Sequence[str]] = None,
        name: Optional[str] = None,
    ) -> "CategoricalColumn":
        """Build a column from Python ints, ``None`` marking a missing cell."""
        missing = torch.tensor([v is None for v in seq], dtype=torch.bool)
        values = torch.tensor([MISSING if v is None else int(v) for v in seq], dtype=torch.int64)
        return cls(values, nlevels, missing, tuple(levels) if levels is not None else None, name)

    @classmethod
    def from_sentinel(
        cls,
        values: ArrayLike,
        nlevels: int,
        *,
        levels: Optional[Sequence[str]] = None,
        name: Optional[str] = None,
    ) -> "CategoricalColumn":
        """Build a column from integers where :data:`MISSING` marks a missing cell."""
        return cls(_as_index_tensor(values), nlevels, None, tuple(levels) if levels is not None else None, name)

    @classmethod
    def from_labels(
        cls,
        labels: Sequence[Hashable],
        levels: Sequence[Hashable],
        *,
        strict: bool = True,
        name: Optional[str] = None,
    ) -> "CategoricalColumn":
        """Map raw category *labels* to their 1-based position in *levels*.

        ``None`` labels are missing.  Labels that do not appear in *levels*
        raise :class:`InvalidLevelError` unless ``strict=False``, in which case
        they are treated as missing too.
        """
        position = {lvl: i for i, lvl in enumerate(levels, start=1)}
        if len(position) != len(levels):
            raise InvalidLevelError(f"column {name or '<unnamed>'}: duplicate level names", column=name)

        codes = []
        dropped = 0
        for row, lab in enumerate(labels):
            if lab is None:
                codes.append(MISSING)
            elif lab in position:
                codes.append(position[lab])
            elif strict:
                raise InvalidLevelError(
                    f"column {name or '<unnamed>'}: label {lab!r} at row {row} is not a declared level",
                    column=name,
                    row=row,
                )
            else:
                codes.append(MISSING)
                dropped += 1

        if dropped:
            logger.debug("column %s: %d undeclared labels treated as missing", name or "<unnamed>", dropped)

        return cls(
            torch.tensor(codes, dtype=torch.int64),
            len(levels),
            None,
            tuple(str(lvl) for lvl in levels),
            name,
        )

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    @property
    def label(self) -> str:
        return self.name if self.name is not None else "<unnamed>"

    @property
    def nrows(self) -> int:
        return int(self.values.shape[0])

    def __len__(self) -> int:
        return self.nrows

    def level_names(self) -> Tuple[str, ...]:
        """Declared level names, or ``"1".."L"`` when none were given.

        Built on demand: the default names grow with ``nlevels``, not with
        the number of rows.
        """
        if self.levels is not None:
            return self.levels
        return tuple(str(i) for i in range(1, self.nlevels + 1))

    def tolist(self) -> list[Optional[int]]:
        """Level indices as Python ints, ``None`` for missing cells."""
        return [None if m else int(v) for v, m in zip(self.values.tolist(), self.missing.tolist())]


@dataclass(frozen=True, eq=False)
class ColumnSet:
    """Ordered, non-empty collection of columns sharing one row count.

    The first column is the least significant radix digit.
    """

    columns: Tuple[CategoricalColumn, ...]

    def __post_init__(self):
        columns = tuple(self.columns)
        if not columns:
            raise InvalidShapeError("A column set needs at least one column")
        for j, col in enumerate(columns):
            if not isinstance(col, CategoricalColumn):
                raise TypeError(f"Column {j} is a {type(col).__name__}, expected CategoricalColumn")

        nrows = columns[0].nrows
        for j, col in enumerate(columns[1:], start=1):
            if col.nrows != nrows:
                raise InvalidShapeError(
                    f"Column {j} ({col.label}) has {col.nrows} rows, column 0 has {nrows}"
                )
        object.__setattr__(self, "columns", columns)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_columns(cls, *columns: CategoricalColumn) -> "ColumnSet":
        return cls(tuple(columns))

    @classmethod
    def coerce(cls, columns: Union["ColumnSet", Sequence[CategoricalColumn]]) -> "ColumnSet":
        """Return *columns* unchanged if already a set, otherwise wrap it."""
        if isinstance(columns, ColumnSet):
            return columns
        if isinstance(columns, CategoricalColumn):
            return cls((columns,))
        return cls(tuple(columns))

    @classmethod
    def from_array(
        cls,
        matrix: Any,
        nlevels: Sequence[int],
        *,
        names: Optional[Sequence[str]] = None,
    ) -> "ColumnSet":
        """Split an ``(R, N)`` integer matrix in the sentinel convention into columns."""
        if isinstance(matrix, np.ndarray):
            if matrix.dtype.kind not in "iu":
                raise TypeError(f"Level indices must be integers, got numpy dtype {matrix.dtype}")
            mat = torch.from_numpy(np.ascontiguousarray(matrix))
        else:
            mat = torch.as_tensor(matrix)
        if mat.dim() != 2:
            raise InvalidShapeError(f"Expected an (rows, columns) matrix, got shape {tuple(mat.shape)}")

        ncols = mat.shape[1]
        if len(nlevels) != ncols:
            raise InvalidShapeError(f"{len(nlevels)} level counts given for {ncols} columns")
        if names is not None and len(names) != ncols:
            raise InvalidShapeError(f"{len(names)} names given for {ncols} columns")

        cols = [
            CategoricalColumn.from_sentinel(
                mat[:, j].contiguous(),
                nlevels[j],
                name=names[j] if names is not None else str(j),
            )
            for j in range(ncols)
        ]
        return cls(tuple(cols))

    # ------------------------------------------------------------------
    # Shape helpers
    # ------------------------------------------------------------------

    @property
    def ncols(self) -> int:
        return len(self.columns)

    @property
    def nrows(self) -> int:
        return self.columns[0].nrows

    @property
    def nlevels(self) -> Tuple[int, ...]:
        return tuple(col.nlevels for col in self.columns)

    @property
    def nconfigurations(self) -> int:
        """Size of the joint configuration space, as an exact Python int."""
        total = 1
        for n in self.nlevels:
            total *= n
        return total

    def stacked(self) -> Tuple[Tensor, Tensor]:
        """Return ``(values, missing)`` stacked to shape ``(N, R)``."""
        values = torch.stack([col.values for col in self.columns])
        missing = torch.stack([col.missing for col in self.columns])
        return values, missing

    def __len__(self) -> int:
        return self.ncols

    def __iter__(self) -> Iterator[CategoricalColumn]:
        return iter(self.columns)

    def __getitem__(self, idx: int) -> CategoricalColumn:
        return self.columns[idx]
