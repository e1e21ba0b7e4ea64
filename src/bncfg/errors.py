"""Exceptions raised while validating and encoding categorical columns."""

from __future__ import annotations

__all__ = [
    "ConfigurationError",
    "InvalidShapeError",
    "InvalidLevelError",
    "ConfigurationOverflowError",
]


class ConfigurationError(ValueError):
    """Base class – every input rejected by *bncfg* raises a subclass."""


class InvalidShapeError(ConfigurationError):
    """Empty column set, non 1-D buffers or columns of unequal length."""


class InvalidLevelError(ConfigurationError):
    """A level count below one or a level index outside ``[1, nlevels]``."""

    def __init__(self, message: str, *, column: int | str | None = None, row: int | None = None):
        super().__init__(message)
        self.column = column
        self.row = row


class ConfigurationOverflowError(ConfigurationError, OverflowError):
    """The configuration space does not fit the integer width of the codes."""

    def __init__(self, nconfigurations: int, limit: int):
        super().__init__(
            f"{nconfigurations} configurations exceed the largest representable code {limit}"
        )
        self.nconfigurations = nconfigurations
        self.limit = limit
