"""Paper routes: collection CRUD, classification and coding removal."""

import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from paperclassifier.gui.state import state
from paperclassifier.services.classification_service import (
    ClassificationFailure,
    ClassificationSuccess,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class PaperPayload(BaseModel):
    """Request body for adding a paper; all fields optional (blank paper)."""
    title: str = ""
    abstract: str = ""
    external_id: Optional[str] = None


class PaperUpdatePayload(BaseModel):
    """Request body for editing a paper; only the fields sent are changed."""
    title: Optional[str] = None
    abstract: Optional[str] = None
    external_id: Optional[str] = None


def _papers_json() -> JSONResponse:
    return JSONResponse({"papers": [p.to_dict() for p in state.store.papers]})


def _not_found(paper_id: str) -> JSONResponse:
    return JSONResponse({"error": f"Paper not found: {paper_id}"}, status_code=404)


# ============================================================================
# Collection
# ============================================================================


@router.get("/api/papers")
async def list_papers():
    """Return the current paper collection snapshot."""
    return _papers_json()


@router.post("/api/papers")
async def add_paper(body: Optional[PaperPayload] = None):
    """Append a paper (blank when no content is given)."""
    if body is None or not (body.title or body.abstract or body.external_id):
        paper_id = state.store.add()
    else:
        paper_id = state.store.add_with_content(
            body.title, body.abstract, body.external_id or None
        )
    return JSONResponse(state.store.get(paper_id).to_dict(), status_code=201)


@router.patch("/api/papers/{paper_id}")
async def update_paper(paper_id: str, body: PaperUpdatePayload):
    """Edit title, abstract or external id of a paper."""
    if state.store.get(paper_id) is None:
        return _not_found(paper_id)
    changes = body.model_dump(exclude_unset=True)
    if "external_id" in changes:
        changes["external_id"] = changes["external_id"] or None
    state.store.update(paper_id, **changes)
    return JSONResponse(state.store.get(paper_id).to_dict())


@router.delete("/api/papers/{paper_id}")
async def remove_paper(paper_id: str):
    """Remove one paper; removing the last one leaves a blank paper."""
    if state.store.get(paper_id) is None:
        return _not_found(paper_id)
    state.store.remove(paper_id)
    return _papers_json()


@router.delete("/api/papers")
async def clear_papers():
    """Reset the collection to a single blank paper."""
    state.store.clear()
    return _papers_json()


# ============================================================================
# Classification
# ============================================================================


@router.post("/api/papers/{paper_id}/classify")
async def classify_paper(paper_id: str):
    """Classify one paper with the configured model.

    A paper already being classified is rejected with 409; a response
    for a paper removed in the meantime is discarded.
    """
    paper = state.store.get(paper_id)
    if paper is None:
        return _not_found(paper_id)
    if paper.is_loading:
        return JSONResponse({"error": "Classification already in progress"}, status_code=409)
    if not paper.can_classify:
        return JSONResponse({"error": "Title and abstract are required"}, status_code=422)

    state.store.set_loading(paper_id, True)
    try:
        result = await state.classifier.classify(
            paper.title, paper.abstract, state.settings.classifier_settings()
        )
        if isinstance(result, ClassificationSuccess):
            state.store.attach_coding(paper_id, result.coding)
    finally:
        # attach_coding clears the flag; anything else must not leave it set
        current = state.store.get(paper_id)
        if current is not None and current.is_loading:
            state.store.set_loading(paper_id, False)

    if isinstance(result, ClassificationFailure):
        return JSONResponse(
            {"error": result.message, "kind": result.kind.value},
            status_code=502,
        )

    updated = state.store.get(paper_id)
    if updated is None:
        logger.info("Discarded classification for removed paper %s", paper_id)
        return _not_found(paper_id)
    return JSONResponse(updated.to_dict())


@router.delete("/api/papers/{paper_id}/coding")
async def clear_coding(paper_id: str):
    """Remove the coding of one paper."""
    if state.store.get(paper_id) is None:
        return _not_found(paper_id)
    state.store.clear_coding(paper_id)
    return JSONResponse(state.store.get(paper_id).to_dict())


@router.delete("/api/codings")
async def clear_all_codings():
    """Remove the codings of every paper."""
    state.store.clear_all_codings()
    return _papers_json()
