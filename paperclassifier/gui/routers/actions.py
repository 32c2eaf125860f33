"""Action routes: spreadsheet import and export."""

import logging

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import JSONResponse, Response

from paperclassifier.errors import SpreadsheetImportError
from paperclassifier.gui.state import state
from paperclassifier.services import spreadsheet_service

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Import
# ============================================================================


@router.post("/actions/import")
async def import_spreadsheet(file: UploadFile = File(...)):
    """Replace the whole collection with the rows of an uploaded sheet.

    On any validation problem the collection is left untouched and the
    full error list is returned with status 422.
    """
    content = await file.read()
    try:
        rows = spreadsheet_service.decode(content, file.filename or "")
    except SpreadsheetImportError as e:
        return JSONResponse({"error": e.message, "errors": e.errors}, status_code=422)

    state.store.replace_all(rows)
    return JSONResponse(
        {
            "imported": len(rows),
            "papers": [p.to_dict() for p in state.store.papers],
        }
    )


# ============================================================================
# Export
# ============================================================================


@router.get("/actions/export")
async def export_spreadsheet():
    """Download the collection as an ``.xlsx`` workbook."""
    content = spreadsheet_service.export_bytes(state.store.papers)
    filename = spreadsheet_service.DEFAULT_EXPORT_FILENAME
    return Response(
        content=content,
        media_type=spreadsheet_service.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
