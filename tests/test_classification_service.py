"""Tests for the classification client."""

import dataclasses
import json

import httpx
import openai
import pytest

from paperclassifier.config import FewShotExample, LLMSettings, load_few_shot_examples
from paperclassifier.models.coding import Coding
from paperclassifier.services.classification_service import (
    PARSING_FAILED,
    ClassificationFailure,
    ClassificationSuccess,
    FailureKind,
    build_messages,
    response_format,
    _default_client,
)

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/responses")


class TestBuildMessages:
    def test_manual_examples_then_target(self):
        example = FewShotExample(
            title="Example title",
            abstract="Example abstract",
            coding=Coding(include=0, reasoning="Not STEM"),
        )
        messages = build_messages("T", "A", "MANUAL", [example])

        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[0]["content"] == "MANUAL"
        assert json.loads(messages[1]["content"]) == {
            "title": "Example title",
            "abstract": "Example abstract",
        }
        assert json.loads(messages[2]["content"]) == {"include": 0, "_reasoning": "Not STEM"}
        assert json.loads(messages[3]["content"]) == {"title": "T", "abstract": "A"}

    def test_packaged_examples_are_all_sent(self):
        examples = load_few_shot_examples()
        messages = build_messages("T", "A", "MANUAL", examples)
        assert len(messages) == 2 + 2 * len(examples)

    def test_response_format_uses_coding_schema(self):
        fmt = response_format()
        assert fmt["type"] == "json_schema"
        properties = fmt["schema"]["properties"]
        assert "educationalLevel" in properties
        assert "_confidence" in properties
        assert fmt["schema"]["required"] == ["include"]


class TestClassify:
    """Success and failure channels."""

    @pytest.mark.asyncio
    async def test_success(self, make_classifier, llm):
        reply = {
            "include": 1,
            "reason": [{"group": "choice", "clarification": "degree"}],
            "subject": ["STEM"],
            "design": 1,
            "educationalLevel": [2],
            "_confidence": 90,
        }
        classifier, client = make_classifier(reply=reply)

        result = await classifier.classify("T", "A", llm)

        assert isinstance(result, ClassificationSuccess)
        assert result.coding.design == 1
        assert result.coding.reason_labels == ["degree choice"]

        (call,) = client.responses.calls
        assert call["model"] == "gpt-4o-mini"
        assert call["input"][0] == {"role": "system", "content": "Code the paper."}
        assert json.loads(call["input"][-1]["content"]) == {"title": "T", "abstract": "A"}
        assert call["text"]["format"]["type"] == "json_schema"

    @pytest.mark.asyncio
    async def test_network_error(self, make_classifier, llm):
        classifier, _ = make_classifier(error=openai.APIConnectionError(request=REQUEST))

        result = await classifier.classify("T", "A", llm)
        assert isinstance(result, ClassificationFailure)
        assert result.kind == FailureKind.TRANSPORT

        coding = await classifier.classify_or_default("T", "A", llm)
        assert coding.to_wire() == {"include": 0, "_reasoning": PARSING_FAILED}

    @pytest.mark.asyncio
    async def test_remote_error(self, make_classifier, llm):
        error = openai.APIStatusError(
            "Invalid model",
            response=httpx.Response(400, request=REQUEST),
            body=None,
        )
        classifier, _ = make_classifier(error=error)

        result = await classifier.classify("T", "A", llm)

        assert result.kind == FailureKind.REMOTE
        assert "400" in result.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reply",
        ['{"include": 2}', '{"include": 1, "design": 9}', "not json", ""],
    )
    async def test_schema_error(self, make_classifier, llm, reply):
        classifier, _ = make_classifier(reply=reply)

        result = await classifier.classify("T", "A", llm)

        assert isinstance(result, ClassificationFailure)
        assert result.kind == FailureKind.SCHEMA

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "llm_settings",
        [LLMSettings(model="gpt-4o", api_key=""), LLMSettings(model=" ", api_key="sk-test")],
    )
    async def test_missing_config_makes_no_request(self, make_classifier, llm_settings):
        classifier, client = make_classifier(reply={"include": 1})

        result = await classifier.classify("T", "A", llm_settings)

        assert result.kind == FailureKind.MISSING_CONFIG
        assert client.responses.calls == []

    @pytest.mark.asyncio
    async def test_classify_or_default_passes_success_through(self, make_classifier, llm):
        classifier, _ = make_classifier(reply={"include": 0, "_reasoning": "Not relevant"})

        coding = await classifier.classify_or_default("T", "A", llm)

        assert coding.include == 0
        assert coding.reasoning == "Not relevant"

    @pytest.mark.asyncio
    async def test_unexpected_client_error_is_a_failure(self, make_classifier, llm):
        classifier, _ = make_classifier(error=RuntimeError("boom"))

        result = await classifier.classify("T", "A", llm)

        assert isinstance(result, ClassificationFailure)
        assert result.kind == FailureKind.REMOTE
        assert "boom" in result.message

        coding = await classifier.classify_or_default("T", "A", llm)
        assert coding.reasoning == PARSING_FAILED

    @pytest.mark.asyncio
    async def test_client_closed_after_every_call(self, make_classifier, llm):
        classifier, client = make_classifier(reply={"include": 1})

        await classifier.classify("T", "A", llm)
        client.responses.reply = "not json"
        await classifier.classify("T", "A", llm)
        client.responses.error = RuntimeError("boom")
        await classifier.classify("T", "A", llm)

        assert len(client.responses.calls) == 3
        assert client.closed == 3


class TestDefaultClient:
    @pytest.mark.asyncio
    async def test_exposes_responses_api_and_closes(self, llm):
        async with _default_client(llm) as client:
            assert callable(client.responses.create)
        assert client.is_closed()


def test_result_types_carry_only_their_payload():
    success = ClassificationSuccess(coding=Coding(include=0))
    failure = ClassificationFailure(kind=FailureKind.SCHEMA, message="bad")

    assert [f.name for f in dataclasses.fields(success)] == ["coding"]
    assert [f.name for f in dataclasses.fields(failure)] == ["kind", "message"]
    assert not hasattr(success, "ok")
    assert not hasattr(failure, "ok")
