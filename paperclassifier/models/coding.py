"""Coding schema: the structured classification result for one paper.

The same pydantic model validates LLM responses, spreadsheet imports and
API payloads, and produces the JSON schema the remote model is constrained to.
Wire names follow the coding manual (``educationalLevel``, ``_confidence``,
``_reasoning``); Python code uses the snake_case field names.
"""

from typing import Any, Literal, Optional, get_args

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from paperclassifier.errors import CodingValidationError

ReasonGroup = Literal[
    "aspiration",
    "choice",
    "retention",
    "preparation",
    "attrition",
    "trajectory",
]
ReasonClarification = Literal["degree", "career", "course", "enrollment"]
DesignCode = Literal[1, 2, 3, 4, 5, 6]
EducationalLevel = Literal[1, 2, 3]

REASON_GROUPS: tuple[str, ...] = get_args(ReasonGroup)
REASON_CLARIFICATIONS: tuple[str, ...] = get_args(ReasonClarification)
DESIGN_CODES: tuple[int, ...] = get_args(DesignCode)
EDUCATIONAL_LEVELS: tuple[int, ...] = get_args(EducationalLevel)

DESIGN_LABELS = {
    1: "Quantitative",
    2: "Qualitative",
    3: "Mixed-Methods",
    4: "Review/Meta-Analysis",
    5: "Theoretical",
    6: "Descriptive/Report",
}

LEVEL_LABELS = {
    1: "K-12",
    2: "Higher Education",
    3: "Vocational",
}

# Fields that only apply to included papers (both wire and Python names)
_DETAIL_KEYS = frozenset(
    {"reason", "subject", "design", "educationalLevel", "educational_level"}
)


def _is_int_code(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _unique(items: list) -> list:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


class Reason(BaseModel):
    """One justification entry, e.g. ``degree choice``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    group: ReasonGroup
    clarification: Optional[ReasonClarification] = None

    @property
    def label(self) -> str:
        """Human-readable form: ``"<clarification> <group>"`` or ``"<group>"``."""
        if self.clarification:
            return f"{self.clarification} {self.group}"
        return self.group


class Coding(BaseModel):
    """Classification outcome for one paper."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    include: Literal[0, 1]
    reason: Optional[list[Reason]] = None
    subject: Optional[list[str]] = None
    design: Optional[DesignCode] = None
    educational_level: Optional[list[EducationalLevel]] = Field(
        default=None, alias="educationalLevel"
    )
    confidence: Optional[float] = Field(default=None, alias="_confidence")
    reasoning: Optional[str] = Field(default=None, alias="_reasoning")

    @model_validator(mode="before")
    @classmethod
    def _drop_details_when_excluded(cls, data: Any) -> Any:
        """Ignore detail fields on excluded codings; they are not applicable."""
        if isinstance(data, dict):
            include = data.get("include")
            if _is_int_code(include) and include == 0:
                return {k: v for k, v in data.items() if k not in _DETAIL_KEYS}
        return data

    @field_validator("include", "design", mode="before")
    @classmethod
    def _integer_code(cls, value: Any) -> Any:
        if value is not None and not _is_int_code(value):
            raise ValueError("expected an integer code")
        return value

    @field_validator("educational_level", mode="before")
    @classmethod
    def _integer_levels(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            for item in value:
                if not _is_int_code(item):
                    raise ValueError("educational levels must be integer codes")
        return value

    @field_validator("educational_level")
    @classmethod
    def _unique_levels(cls, value: Optional[list[int]]) -> Optional[list[int]]:
        return _unique(value) if value is not None else None

    @field_validator("subject")
    @classmethod
    def _clean_subjects(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return None
        return _unique([s.strip() for s in value if s.strip()])

    # ── Presentation helpers ──────────────────────────────────────────

    @property
    def is_included(self) -> bool:
        return self.include == 1

    @property
    def reason_labels(self) -> list[str]:
        return [r.label for r in self.reason or []]

    @property
    def design_label(self) -> Optional[str]:
        return DESIGN_LABELS.get(self.design) if self.design else None

    @property
    def level_labels(self) -> list[str]:
        return [LEVEL_LABELS[level] for level in self.educational_level or []]

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire names, omitting absent fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


def validate_coding(candidate: Any) -> Coding:
    """Validate *candidate* against the coding schema.

    Accepts a mapping (wire or Python field names), a JSON string, or an
    existing :class:`Coding`. Fails closed: out-of-domain codes, missing
    ``include`` and malformed shapes are rejected, never coerced.

    Raises:
        CodingValidationError: listing every field-level problem.
    """
    if isinstance(candidate, Coding):
        return candidate
    try:
        if isinstance(candidate, (str, bytes)):
            return Coding.model_validate_json(candidate)
        return Coding.model_validate(candidate)
    except ValidationError as exc:
        raise CodingValidationError(
            "Coding does not match the schema", format_validation_errors(exc)
        ) from exc


def format_validation_errors(exc: ValidationError) -> list[str]:
    """Flatten a pydantic error into ``"field.path: message"`` strings."""
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "coding"
        messages.append(f"{location}: {err['msg']}")
    return messages
