"""LLM classification of a single paper against the coding manual.

Every call is self-contained: the full coding manual, then each few-shot
example as a user/assistant exchange, then the target paper. The response
is constrained to the :class:`Coding` JSON schema and validated again on
arrival; anything that goes wrong becomes a :class:`ClassificationFailure`.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Union

import openai
from openai import AsyncOpenAI

from paperclassifier.config import (
    FewShotExample,
    LLMSettings,
    Settings,
    load_coding_manual,
    load_few_shot_examples,
)
from paperclassifier.errors import CodingValidationError
from paperclassifier.models.coding import Coding, validate_coding

logger = logging.getLogger(__name__)

PARSING_FAILED = "Parsing failed"
RESPONSE_FORMAT_NAME = "paper_coding"

ClientFactory = Callable[[LLMSettings], Any]


class FailureKind(str, Enum):
    MISSING_CONFIG = "missing_config"
    TRANSPORT = "transport"
    REMOTE = "remote"
    SCHEMA = "schema"


@dataclass(frozen=True)
class ClassificationSuccess:
    coding: Coding


@dataclass(frozen=True)
class ClassificationFailure:
    kind: FailureKind
    message: str


ClassificationResult = Union[ClassificationSuccess, ClassificationFailure]


def _paper_json(title: str, abstract: str) -> str:
    return json.dumps({"title": title, "abstract": abstract}, ensure_ascii=False, indent=2)


def build_messages(
    title: str,
    abstract: str,
    manual: str,
    examples: Sequence[FewShotExample],
) -> list[dict[str, str]]:
    """Assemble the request input: manual, few-shot exchanges, target paper."""
    messages = [{"role": "system", "content": manual}]
    for example in examples:
        messages.append({"role": "user", "content": _paper_json(example.title, example.abstract)})
        messages.append(
            {
                "role": "assistant",
                "content": json.dumps(example.coding.to_wire(), ensure_ascii=False, indent=2),
            }
        )
    messages.append({"role": "user", "content": _paper_json(title, abstract)})
    return messages


def response_format() -> dict[str, Any]:
    """Structured-output format built from the :class:`Coding` model."""
    return {
        "type": "json_schema",
        "name": RESPONSE_FORMAT_NAME,
        "schema": Coding.model_json_schema(by_alias=True),
        # Optional detail fields cannot be expressed in strict mode
        "strict": False,
    }


def _default_client(llm: LLMSettings) -> AsyncOpenAI:
    return AsyncOpenAI(api_key=llm.api_key)


class PaperClassifier:
    """Sends one paper at a time to the configured OpenAI model."""

    def __init__(
        self,
        manual: str,
        examples: Sequence[FewShotExample],
        client_factory: Optional[ClientFactory] = None,
    ):
        """Initialize classifier.

        Args:
            manual: Coding manual sent as the instruction prompt
            examples: Ordered few-shot examples re-sent with every call
            client_factory: Builds an async OpenAI-compatible client from
                the model settings (injected in tests)
        """
        self.manual = manual
        self.examples = list(examples)
        self._client_factory = client_factory or _default_client

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client_factory: Optional[ClientFactory] = None,
    ) -> "PaperClassifier":
        return cls(
            manual=load_coding_manual(settings.manual_path),
            examples=load_few_shot_examples(settings.examples_path),
            client_factory=client_factory,
        )

    async def classify(self, title: str, abstract: str, llm: LLMSettings) -> ClassificationResult:
        """Classify one paper; never raises for remote or validation problems."""
        if not llm.is_configured:
            return self._fail(FailureKind.MISSING_CONFIG, "Model and API key must both be set")

        try:
            # The client owns an HTTP connection pool; closed after each call
            async with self._client_factory(llm) as client:
                response = await client.responses.create(
                    model=llm.model,
                    input=build_messages(title, abstract, self.manual, self.examples),
                    text={"format": response_format()},
                )
        except openai.APIConnectionError as e:
            return self._fail(FailureKind.TRANSPORT, f"Could not reach the model: {e}")
        except openai.APIStatusError as e:
            return self._fail(FailureKind.REMOTE, f"Model request failed ({e.status_code}): {e.message}")
        except openai.OpenAIError as e:
            return self._fail(FailureKind.REMOTE, str(e))
        except Exception as e:
            logger.exception("Unexpected error while classifying %r", title[:60])
            return ClassificationFailure(kind=FailureKind.REMOTE, message=f"Unexpected error: {e}")

        output = getattr(response, "output_text", "") or ""
        if not output.strip():
            return self._fail(FailureKind.SCHEMA, "Model returned an empty response")
        try:
            coding = validate_coding(output)
        except CodingValidationError as e:
            return self._fail(FailureKind.SCHEMA, str(e))

        logger.debug("Classified %r as include=%d", title[:60], coding.include)
        return ClassificationSuccess(coding=coding)

    async def classify_or_default(self, title: str, abstract: str, llm: LLMSettings) -> Coding:
        """Classify, substituting an exclude coding marked ``Parsing failed`` on failure."""
        result = await self.classify(title, abstract, llm)
        if isinstance(result, ClassificationSuccess):
            return result.coding
        return Coding(include=0, reasoning=PARSING_FAILED)

    @staticmethod
    def _fail(kind: FailureKind, message: str) -> ClassificationFailure:
        logger.warning("Classification failed [%s]: %s", kind.value, message)
        return ClassificationFailure(kind=kind, message=message)
