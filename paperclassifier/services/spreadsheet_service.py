"""Spreadsheet import/export for paper collections.

Export writes one row per paper under a fixed header; import matches
columns by header name, validates every row, and either returns the
complete list of decoded rows or raises a single
:class:`SpreadsheetImportError` naming every offending row.
"""

import io
import logging
import math
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Optional, Union

import pandas as pd
from openpyxl.utils import get_column_letter

from paperclassifier.errors import CodingValidationError, SpreadsheetImportError
from paperclassifier.models.coding import (
    DESIGN_CODES,
    EDUCATIONAL_LEVELS,
    REASON_CLARIFICATIONS,
    REASON_GROUPS,
    Coding,
    Reason,
    validate_coding,
)
from paperclassifier.models.paper import ImportedPaper, Paper

logger = logging.getLogger(__name__)

COLUMNS = [
    "ID",
    "Article Title",
    "Abstract",
    "Include-C",
    "Reason-C",
    "Discipline-C",
    "Design-C",
    "Level-C",
    "AI_Confidence",
    "AI_Reasoning",
]
COLUMN_WIDTHS = [15, 30, 50, 10, 20, 20, 10, 15, 15, 50]
REQUIRED_COLUMNS = ("Article Title", "Abstract")

SHEET_NAME = "Classification Results"
DEFAULT_EXPORT_FILENAME = "paper-classification-results.xlsx"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

Source = Union[str, Path, bytes, BinaryIO]


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def _join(items: Iterable[Any]) -> str:
    return ", ".join(str(item) for item in items)


def _encode_row(paper: Paper) -> dict[str, Any]:
    coding = paper.coding
    row: dict[str, Any] = {
        "ID": paper.display_id,
        "Article Title": paper.title,
        "Abstract": paper.abstract,
        "Include-C": None,
        "Reason-C": "",
        "Discipline-C": "",
        "Design-C": None,
        "Level-C": "",
        "AI_Confidence": None,
        "AI_Reasoning": "",
    }
    if coding is None:
        return row

    row["Include-C"] = coding.include
    row["AI_Confidence"] = coding.confidence
    row["AI_Reasoning"] = coding.reasoning or ""
    if coding.is_included:
        row["Reason-C"] = _join(coding.reason_labels)
        row["Discipline-C"] = _join(coding.subject or [])
        row["Design-C"] = coding.design
        row["Level-C"] = _join(coding.educational_level or [])
    return row


def encode(papers: Iterable[Paper]) -> pd.DataFrame:
    """Tabulate *papers* under :data:`COLUMNS`, one row per paper.

    Absent numeric values stay ``None`` so they are written as empty
    cells rather than zero.
    """
    rows = [_encode_row(paper) for paper in papers]
    return pd.DataFrame(rows, columns=COLUMNS, dtype=object)


def write_workbook(papers: Iterable[Paper], target: Union[str, Path, BinaryIO]) -> None:
    """Write *papers* as an ``.xlsx`` workbook to a path or binary stream."""
    frame = encode(papers)
    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        sheet = writer.sheets[SHEET_NAME]
        sheet.freeze_panes = "A2"
        for index, width in enumerate(COLUMN_WIDTHS, start=1):
            sheet.column_dimensions[get_column_letter(index)].width = width


def export_bytes(papers: Iterable[Paper]) -> bytes:
    """Return the workbook for *papers* as bytes (for downloads)."""
    buffer = io.BytesIO()
    write_workbook(papers, buffer)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Cell parsing
# ---------------------------------------------------------------------------

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def cell_text(value: Any) -> str:
    """Render a cell as trimmed text; whole floats lose their ``.0``."""
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_number(value: Any) -> Optional[float]:
    """Return the numeric value of a cell, or ``None`` when non-numeric."""
    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return None if math.isnan(number) else number


def _parse_code(value: Any) -> Optional[int]:
    number = parse_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def parse_reasons(text: str) -> Optional[list[Reason]]:
    """Parse ``Reason-C``: comma-separated ``<group>`` or ``<clarification> <group>``.

    Tokens without a known group are dropped; an unknown clarification is
    dropped while its group is kept.
    """
    reasons: list[Reason] = []
    for token in text.split(","):
        words = token.strip().lower().split()
        if not words or len(words) > 2:
            continue
        if words[-1] in REASON_GROUPS:
            group, clarification = words[-1], words[0] if len(words) == 2 else None
        elif words[0] in REASON_GROUPS:
            group, clarification = words[0], words[-1] if len(words) == 2 else None
        else:
            continue
        if clarification not in REASON_CLARIFICATIONS:
            clarification = None
        reasons.append(Reason(group=group, clarification=clarification))
    return reasons or None


def parse_subjects(text: str) -> Optional[list[str]]:
    subjects = [s.strip() for s in text.split(",") if s.strip()]
    return subjects or None


def parse_levels(text: str) -> Optional[list[int]]:
    levels = []
    for part in text.split(","):
        level = _parse_code(part)
        if level in EDUCATIONAL_LEVELS:
            levels.append(level)
    return levels or None


def _parse_design(value: Any) -> Optional[int]:
    design = _parse_code(value)
    return design if design in DESIGN_CODES else None


def _decode_coding(record: dict[str, Any]) -> Optional[Coding]:
    """Build the row's coding, or ``None`` when ``Include-C`` is absent.

    Raises:
        CodingValidationError: If ``Include-C`` is numeric but not 0 or 1.
    """
    include = parse_number(record.get("Include-C"))
    if include is None:
        return None

    candidate: dict[str, Any] = {
        "include": int(include) if include.is_integer() else include,
        "_confidence": parse_number(record.get("AI_Confidence")),
        "_reasoning": cell_text(record.get("AI_Reasoning")) or None,
    }
    if include == 1:
        candidate.update(
            {
                "reason": parse_reasons(cell_text(record.get("Reason-C"))),
                "subject": parse_subjects(cell_text(record.get("Discipline-C"))),
                "design": _parse_design(record.get("Design-C")),
                "educationalLevel": parse_levels(cell_text(record.get("Level-C"))),
            }
        )
    return validate_coding({k: v for k, v in candidate.items() if v is not None})


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def read_table(source: Source, filename: Optional[str] = None) -> pd.DataFrame:
    """Read the first sheet (or a CSV file) into a DataFrame of raw cells.

    *filename* selects the format for in-memory sources; paths use their
    own suffix. Anything not ending in ``.csv`` is read as a workbook.

    Raises:
        SpreadsheetImportError: If the file cannot be read or is empty.
    """
    name = filename or (str(source) if isinstance(source, (str, Path)) else "")
    if isinstance(source, bytes):
        source = io.BytesIO(source)

    try:
        if name.lower().endswith(".csv"):
            return pd.read_csv(source, dtype=object)
        return pd.read_excel(source, sheet_name=0, dtype=object, engine="openpyxl")
    except pd.errors.EmptyDataError as exc:
        raise SpreadsheetImportError("The file contains no data rows") from exc
    except Exception as exc:
        raise SpreadsheetImportError(f"Could not read spreadsheet: {exc}") from exc


def decode(source: Source, filename: Optional[str] = None) -> list[ImportedPaper]:
    """Decode a spreadsheet into ordered rows for a full collection replace.

    Raises:
        SpreadsheetImportError: If the file is unreadable, has no data
            rows, lacks a required column, or any row fails validation.
            ``errors`` lists every problem; nothing is partially returned.
    """
    frame = read_table(source, filename)
    frame.columns = [str(column).strip() for column in frame.columns]

    missing = [column for column in REQUIRED_COLUMNS if column not in frame.columns]
    if missing:
        raise SpreadsheetImportError(
            "Missing required column(s)", [f"Missing column: {column}" for column in missing]
        )

    frame = frame.dropna(how="all")
    if frame.empty:
        raise SpreadsheetImportError("The file contains no data rows")

    rows: list[ImportedPaper] = []
    errors: list[str] = []
    for index, record in zip(frame.index, frame.to_dict(orient="records")):
        # Header is row 1 in the user's spreadsheet
        row_number = int(index) + 2
        problems = []

        title = cell_text(record.get("Article Title"))
        abstract = cell_text(record.get("Abstract"))
        if not title:
            problems.append("missing Article Title")
        if not abstract:
            problems.append("missing Abstract")

        coding = None
        try:
            coding = _decode_coding(record)
        except CodingValidationError as exc:
            problems.extend(exc.errors)

        if problems:
            errors.append(f"Row {row_number}: {'; '.join(problems)}")
            continue

        rows.append(
            ImportedPaper(
                title=title,
                abstract=abstract,
                external_id=cell_text(record.get("ID")) or None,
                coding=coding,
            )
        )

    if errors:
        logger.info("Rejected spreadsheet import with %d invalid row(s)", len(errors))
        raise SpreadsheetImportError("Some rows could not be imported", errors)

    logger.info("Decoded %d paper(s) from spreadsheet", len(rows))
    return rows
