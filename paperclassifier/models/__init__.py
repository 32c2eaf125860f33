"""Data models."""

from paperclassifier.models.coding import Coding, Reason, validate_coding
from paperclassifier.models.paper import ImportedPaper, Paper, new_paper_id

__all__ = [
    "Coding",
    "ImportedPaper",
    "Paper",
    "Reason",
    "new_paper_id",
    "validate_coding",
]
