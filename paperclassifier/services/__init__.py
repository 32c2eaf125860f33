"""Service layer."""

from paperclassifier.services.classification_service import (
    ClassificationFailure,
    ClassificationResult,
    ClassificationSuccess,
    FailureKind,
    PaperClassifier,
)
from paperclassifier.services import spreadsheet_service

__all__ = [
    "ClassificationFailure",
    "ClassificationResult",
    "ClassificationSuccess",
    "FailureKind",
    "PaperClassifier",
    "spreadsheet_service",
]
