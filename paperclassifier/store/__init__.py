"""In-memory paper collection store."""

from paperclassifier.store.paper_store import PaperStore, blank_collection, reduce

__all__ = ["PaperStore", "blank_collection", "reduce"]
