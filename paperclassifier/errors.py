"""Exception types shared by the schema, the spreadsheet codec and the API."""

from typing import Optional


class PaperClassifierError(Exception):
    """Base error carrying a summary message and per-item problems."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors: list[str] = list(errors or [])

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        return f"{self.message}: {'; '.join(self.errors)}"


class CodingValidationError(PaperClassifierError):
    """A candidate coding does not satisfy the coding schema."""


class SpreadsheetImportError(PaperClassifierError):
    """A spreadsheet could not be imported. Nothing was applied."""
