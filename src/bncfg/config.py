"""Global configuration for *bncfg*.

This module centralises project-wide constants and helper utilities so they can
be tweaked from a single location: the missing-value sentinel and the integer
width used for configuration codes.

Why a fixed integer width?
--------------------------
Configuration codes are consumed by hosts that store them in plain machine
integers (32-bit in most statistical runtimes).  A code space

    Π L_j  >  max_code(dtype)

cannot be represented and must be rejected up front instead of wrapping
around silently, so every encoder call checks the product of level counts
against :func:`max_code`.
"""

from __future__ import annotations

import torch

__all__ = [
    "MISSING",
    "CODE_DTYPE",
    "FULL_FACTOR_WARN_LEVELS",
    "max_code",
    "resolve_dtype",
    "set_code_dtype",
]

# -----------------------------------------------------------------------------
# Public constants
# -----------------------------------------------------------------------------

MISSING: int = -(2 ** 31)  # NA_INTEGER of the host runtime

CODE_DTYPE: torch.dtype = torch.int32  # matches the host's integer type

_ALLOWED_DTYPES = (torch.int32, torch.int64)

FULL_FACTOR_WARN_LEVELS: int = 100_000  # full_factor() warns above this many levels

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------

def resolve_dtype(dtype: torch.dtype | None = None) -> torch.dtype:
    """Return *dtype* or the global :data:`CODE_DTYPE` when it is ``None``."""
    d = dtype if dtype is not None else CODE_DTYPE
    if d not in _ALLOWED_DTYPES:
        raise ValueError(f"Code dtype must be torch.int32 or torch.int64, got {d}")
    return d


def max_code(dtype: torch.dtype | None = None) -> int:
    """Largest integer representable by the code dtype.

    Parameters
    ----------
    dtype:
        Optional override of the global `CODE_DTYPE`.

    Returns
    -------
    int
        ``torch.iinfo(dtype).max``.
    """
    return int(torch.iinfo(resolve_dtype(dtype)).max)


def set_code_dtype(new_dtype: torch.dtype):
    """Change the global code dtype *in-place*.

    Codes that were already produced keep their dtype – this helper merely
    mutates :data:`CODE_DTYPE` for subsequent calls.
    """
    global CODE_DTYPE
    if new_dtype not in _ALLOWED_DTYPES:
        raise ValueError("Code dtype must be torch.int32 or torch.int64.")
    CODE_DTYPE = new_dtype
