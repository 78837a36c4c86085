"""Exception taxonomy shared by the loader, the rule engine and the cleaner."""

from __future__ import annotations


class SheetRapiError(Exception):
    """Base class for every error raised by sheet-rapi."""


class ParseFailure(SheetRapiError, ValueError):
    """The input could not be turned into a usable table."""


class AnalysisFailure(SheetRapiError):
    """A single detection pass crashed; recorded and skipped, never fatal."""

    def __init__(self, pass_name: str, cause: BaseException) -> None:
        super().__init__(f"{pass_name}: {cause}")
        self.pass_name = pass_name
        self.cause = cause


class FixConflict(SheetRapiError):
    """A repair's preconditions do not hold for the current table."""
