from __future__ import annotations


class AlchemistError(Exception):
    """Base class for boundary failures (bad uploads, malformed payload shape)."""


class DecodeError(AlchemistError):
    """An upload could not be turned into rows."""


class InvalidCollectionError(AlchemistError, TypeError):
    """
    A collection handed to the validators is not a list of record-shaped values.

    This is a caller contract violation, not a data-quality finding, so it is
    raised instead of reported as a diagnostic.
    """
