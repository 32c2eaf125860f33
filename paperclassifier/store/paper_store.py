"""In-memory paper collection: commands in, immutable snapshots out.

Every mutation is a command applied by the pure :func:`reduce` function,
which maps ``(papers, command)`` to a new tuple of :class:`Paper`
snapshots. :class:`PaperStore` holds the current snapshot, generates ids,
and notifies subscribers synchronously after each change.

The collection is never empty: removing the last paper or clearing
leaves exactly one blank paper.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

from paperclassifier.models.coding import Coding
from paperclassifier.models.paper import ImportedPaper, Paper, new_paper_id

logger = logging.getLogger(__name__)

Papers = tuple[Paper, ...]
Listener = Callable[[Papers], None]

UPDATABLE_FIELDS = frozenset({"title", "abstract", "external_id", "coding", "is_loading"})


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AddPaper:
    paper_id: str
    title: str = ""
    abstract: str = ""
    external_id: Optional[str] = None


@dataclass(frozen=True)
class RemovePaper:
    paper_id: str
    blank_id: str  # used when the removal empties the collection


@dataclass(frozen=True)
class ClearPapers:
    blank_id: str


@dataclass(frozen=True)
class UpdatePaper:
    paper_id: str
    changes: tuple[tuple[str, Any], ...]


@dataclass(frozen=True)
class AttachCoding:
    paper_id: str
    coding: Coding


@dataclass(frozen=True)
class ClearCoding:
    paper_id: str


@dataclass(frozen=True)
class ClearAllCodings:
    pass


@dataclass(frozen=True)
class SetLoading:
    paper_id: str
    is_loading: bool


@dataclass(frozen=True)
class ReplaceAll:
    papers: Papers
    blank_id: str  # used when *papers* is empty


Command = Union[
    AddPaper,
    RemovePaper,
    ClearPapers,
    UpdatePaper,
    AttachCoding,
    ClearCoding,
    ClearAllCodings,
    SetLoading,
    ReplaceAll,
]


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def blank_collection(blank_id: Optional[str] = None) -> Papers:
    """The initial state: one paper with empty title and abstract."""
    return (Paper(id=blank_id or new_paper_id()),)


def _map_one(papers: Papers, paper_id: str, change: Callable[[Paper], Paper]) -> Papers:
    """Apply *change* to the paper with *paper_id*; unchanged tuple if absent."""
    if not any(p.id == paper_id for p in papers):
        return papers
    return tuple(change(p) if p.id == paper_id else p for p in papers)


def reduce(papers: Papers, command: Command) -> Papers:
    """Return the collection that results from applying *command*.

    Pure: never mutates *papers*, and returns the very same tuple when the
    command is a no-op (e.g. an unknown paper id).
    """
    if isinstance(command, AddPaper):
        paper = Paper(
            id=command.paper_id,
            title=command.title,
            abstract=command.abstract,
            external_id=command.external_id,
        )
        return papers + (paper,)

    if isinstance(command, RemovePaper):
        remaining = tuple(p for p in papers if p.id != command.paper_id)
        if len(remaining) == len(papers):
            return papers
        return remaining or blank_collection(command.blank_id)

    if isinstance(command, ClearPapers):
        return blank_collection(command.blank_id)

    if isinstance(command, UpdatePaper):
        changes = dict(command.changes)
        return _map_one(papers, command.paper_id, lambda p: dataclasses.replace(p, **changes))

    if isinstance(command, AttachCoding):
        return _map_one(
            papers,
            command.paper_id,
            lambda p: dataclasses.replace(p, coding=command.coding, is_loading=False),
        )

    if isinstance(command, ClearCoding):
        return _map_one(papers, command.paper_id, lambda p: dataclasses.replace(p, coding=None))

    if isinstance(command, ClearAllCodings):
        if all(p.coding is None for p in papers):
            return papers
        return tuple(dataclasses.replace(p, coding=None) for p in papers)

    if isinstance(command, SetLoading):
        return _map_one(
            papers,
            command.paper_id,
            lambda p: dataclasses.replace(p, is_loading=command.is_loading),
        )

    if isinstance(command, ReplaceAll):
        return command.papers or blank_collection(command.blank_id)

    raise TypeError(f"Unknown command: {command!r}")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class PaperStore:
    """Observable holder of the current paper collection snapshot."""

    def __init__(self, papers: Optional[Iterable[Paper]] = None):
        initial = tuple(papers or ())
        self._papers: Papers = initial or blank_collection()
        self._listeners: list[Listener] = []

    @property
    def papers(self) -> Papers:
        """Current immutable snapshot."""
        return self._papers

    def get(self, paper_id: str) -> Optional[Paper]:
        return next((p for p in self._papers if p.id == paper_id), None)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, command: Command) -> Papers:
        """Apply *command* and notify subscribers if the snapshot changed."""
        updated = reduce(self._papers, command)
        if updated is not self._papers:
            self._papers = updated
            for listener in list(self._listeners):
                listener(updated)
        return self._papers

    # ── Operations ────────────────────────────────────────────────────

    def add(self) -> str:
        """Append one blank paper and return its id."""
        paper_id = new_paper_id()
        self.dispatch(AddPaper(paper_id=paper_id))
        return paper_id

    def add_with_content(
        self,
        title: str,
        abstract: str,
        external_id: Optional[str] = None,
    ) -> str:
        paper_id = new_paper_id()
        self.dispatch(
            AddPaper(paper_id=paper_id, title=title, abstract=abstract, external_id=external_id)
        )
        return paper_id

    def remove(self, paper_id: str) -> None:
        self.dispatch(RemovePaper(paper_id=paper_id, blank_id=new_paper_id()))

    def clear(self) -> None:
        self.dispatch(ClearPapers(blank_id=new_paper_id()))

    def update(self, paper_id: str, **fields: Any) -> None:
        """Change any paper field except ``id``.

        Raises:
            ValueError: If a field name is not updatable.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update paper field(s): {', '.join(sorted(unknown))}")
        self.dispatch(UpdatePaper(paper_id=paper_id, changes=tuple(fields.items())))

    def attach_coding(self, paper_id: str, coding: Coding) -> None:
        self.dispatch(AttachCoding(paper_id=paper_id, coding=coding))

    def clear_coding(self, paper_id: str) -> None:
        self.dispatch(ClearCoding(paper_id=paper_id))

    def clear_all_codings(self) -> None:
        self.dispatch(ClearAllCodings())

    def set_loading(self, paper_id: str, is_loading: bool) -> None:
        self.dispatch(SetLoading(paper_id=paper_id, is_loading=is_loading))

    def replace_all(self, rows: Iterable[ImportedPaper]) -> list[str]:
        """Replace the whole collection with imported rows; return new ids."""
        papers = tuple(
            Paper(
                id=new_paper_id(),
                title=row.title,
                abstract=row.abstract,
                external_id=row.external_id,
                coding=row.coding,
            )
            for row in rows
        )
        self.dispatch(ReplaceAll(papers=papers, blank_id=new_paper_id()))
        logger.info("Replaced paper collection with %d imported paper(s)", len(papers))
        return [p.id for p in papers]
