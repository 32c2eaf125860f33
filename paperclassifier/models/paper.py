"""Paper data model."""

import uuid
from dataclasses import dataclass
from typing import Any, Optional

from paperclassifier.models.coding import Coding


def new_paper_id() -> str:
    """Return a fresh process-local paper id."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Paper:
    """One screening unit: a title/abstract pair and its coding state.

    Instances are immutable snapshots; the store replaces them on change.
    """

    id: str
    title: str = ""
    abstract: str = ""
    external_id: Optional[str] = None
    coding: Optional[Coding] = None
    is_loading: bool = False

    @property
    def display_id(self) -> str:
        """Identifier shown to users and written to the ``ID`` column."""
        return self.external_id or self.id

    @property
    def can_classify(self) -> bool:
        return bool(self.title.strip() and self.abstract.strip())

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation used by the HTTP API."""
        return {
            "id": self.id,
            "external_id": self.external_id,
            "title": self.title,
            "abstract": self.abstract,
            "coding": self.coding.to_wire() if self.coding else None,
            "is_loading": self.is_loading,
        }


@dataclass(frozen=True)
class ImportedPaper:
    """One decoded spreadsheet row, ready to become a :class:`Paper`."""

    title: str
    abstract: str
    external_id: Optional[str] = None
    coding: Optional[Coding] = None
