"""Tests for the coding schema."""

import pytest

from paperclassifier.errors import CodingValidationError
from paperclassifier.models.coding import Coding, Reason, validate_coding


class TestValidateCoding:
    """Acceptance and rejection of candidate codings."""

    def test_full_included_coding(self):
        coding = validate_coding(
            {
                "include": 1,
                "reason": [{"group": "choice", "clarification": "degree"}],
                "subject": ["STEM", "Engineering"],
                "design": 1,
                "educationalLevel": [1, 2],
                "_confidence": 92,
                "_reasoning": "RCT on major choice",
            }
        )
        assert coding.is_included
        assert coding.reason == [Reason(group="choice", clarification="degree")]
        assert coding.educational_level == [1, 2]
        assert coding.confidence == 92
        assert coding.reasoning == "RCT on major choice"

    def test_accepts_json_text(self):
        coding = validate_coding('{"include": 0, "_reasoning": "off topic"}')
        assert coding.include == 0
        assert coding.reasoning == "off topic"

    def test_returns_existing_coding_unchanged(self):
        coding = Coding(include=0)
        assert validate_coding(coding) is coding

    def test_python_field_names_are_accepted(self):
        coding = validate_coding({"include": 1, "educational_level": [3]})
        assert coding.educational_level == [3]

    @pytest.mark.parametrize(
        "candidate",
        [
            {},
            {"include": 2},
            {"include": "1"},
            {"include": True},
            {"include": 1, "design": 7},
            {"include": 1, "design": 2.0},
            {"include": 1, "educationalLevel": [4]},
            {"include": 1, "educationalLevel": [True]},
            {"include": 1, "reason": [{"group": "curiosity"}]},
            {"include": 1, "reason": [{"group": "choice", "clarification": "salary"}]},
            {"include": 1, "unexpected": "field"},
        ],
    )
    def test_rejects_out_of_domain_values(self, candidate):
        with pytest.raises(CodingValidationError) as exc_info:
            validate_coding(candidate)
        assert exc_info.value.errors

    def test_error_names_the_field(self):
        with pytest.raises(CodingValidationError) as exc_info:
            validate_coding({"include": 1, "design": 9})
        assert any(e.startswith("design") for e in exc_info.value.errors)

    def test_malformed_json_is_rejected(self):
        with pytest.raises(CodingValidationError):
            validate_coding("{not json")

    def test_excluded_coding_drops_detail_fields(self):
        coding = validate_coding(
            {"include": 0, "design": 2, "subject": ["Math"], "reason": [{"group": "choice"}]}
        )
        assert coding.design is None
        assert coding.subject is None
        assert coding.reason is None

    def test_duplicate_levels_and_subjects_are_collapsed(self):
        coding = validate_coding(
            {"include": 1, "educationalLevel": [2, 2, 1], "subject": [" STEM", "STEM", ""]}
        )
        assert coding.educational_level == [2, 1]
        assert coding.subject == ["STEM"]


class TestCodingPresentation:
    def test_labels(self):
        coding = Coding(
            include=1,
            reason=[Reason(group="choice", clarification="degree"), Reason(group="retention")],
            design=3,
            educational_level=[1, 3],
        )
        assert coding.reason_labels == ["degree choice", "retention"]
        assert coding.design_label == "Mixed-Methods"
        assert coding.level_labels == ["K-12", "Vocational"]

    def test_to_wire_uses_wire_names_and_omits_absent(self):
        coding = Coding(include=1, educational_level=[2], confidence=80)
        assert coding.to_wire() == {"include": 1, "educationalLevel": [2], "_confidence": 80}

    def test_coding_is_immutable(self):
        coding = Coding(include=1)
        with pytest.raises(Exception):
            coding.include = 0
