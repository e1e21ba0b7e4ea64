"""bncfg – joint configurations of categorical variables built on top of PyTorch.

This package maps every row of a table of factors to a single integer that
identifies the row's joint *configuration*: the mixed-radix (column-major)
linear index of its level tuple.  Codes are the building block for counting
parent configurations when learning the parameters of discrete Bayesian
networks; the package itself never builds a frequency table.

Two composable steps are exposed:

* :func:`encode` – columns → 0-based :class:`ConfigurationCodes`;
* :func:`present` – codes → 1-based index or :class:`ConfigurationFactor`.

:func:`configurations` chains both.
"""

from __future__ import annotations

from .api import configurations
from .columns import CategoricalColumn, ColumnSet
from .config import MISSING
from .encoder import ConfigurationCodes, decode, encode, radix_weights
from .errors import (
    ConfigurationError,
    ConfigurationOverflowError,
    InvalidLevelError,
    InvalidShapeError,
)
from .presenter import ConfigurationFactor, full_factor, present, to_factor, to_index

__all__ = [
    "MISSING",
    "CategoricalColumn",
    "ColumnSet",
    "ConfigurationCodes",
    "ConfigurationFactor",
    # operations
    "configurations",
    "encode",
    "decode",
    "radix_weights",
    "present",
    "to_index",
    "to_factor",
    "full_factor",
    # errors
    "ConfigurationError",
    "ConfigurationOverflowError",
    "InvalidLevelError",
    "InvalidShapeError",
]
