"""AI critique of a thumbnail image using OpenAI's Responses API."""

import json
import time
from dataclasses import dataclass, field
from typing import Any

import openai
from openai import AsyncOpenAI

from thumbzone.config import (
    get_critique_language,
    get_critique_model,
    get_critique_prompt_variant,
)
from thumbzone.models.thumbnail import parse_data_uri
from thumbzone.ui.handlers.error import CritiqueError
from ..logging_config import get_logger, log_performance

logger = get_logger(__name__)

FUNCTION_NAME = "submit_thumbnail_critique"

SCORE_FIELDS = ("engagementScore", "clarityScore", "colorScore")
MIN_SUGGESTIONS = 2
MAX_SUGGESTIONS = 4

FUNCTION_DEFINITION: dict[str, Any] = {
    "type": "function",
    "name": FUNCTION_NAME,
    "description": "Return scores, a one-sentence verdict and improvement suggestions for the thumbnail.",
    "parameters": {
        "type": "object",
        "properties": {
            "engagementScore": {
                "type": "number",
                "description": "A score from 0-100 on how likely the thumbnail is to attract clicks and engagement.",
            },
            "clarityScore": {
                "type": "number",
                "description": "A score from 0-100 on how clear and readable the thumbnail is, "
                "especially on small screens.",
            },
            "colorScore": {
                "type": "number",
                "description": "A score from 0-100 for the effectiveness of the color composition and contrast.",
            },
            "overallVerdict": {
                "type": "string",
                "description": "A concise, one-sentence overall verdict on the thumbnail's effectiveness.",
            },
            "suggestions": {
                "type": "array",
                "items": {"type": "string"},
                "description": "A list of 2-4 actionable suggestions for improving the thumbnail.",
            },
        },
        "required": [*SCORE_FIELDS, "overallVerdict", "suggestions"],
        "additionalProperties": False,
    },
    "strict": True,
}

GENERAL_PROMPT = (
    "You are an expert YouTube content strategist and graphic designer with a keen eye for what makes "
    "a thumbnail successful.\n\n"
    "Your task is to analyze the provided thumbnail image and give it a detailed critique. Evaluate it "
    "based on its potential to attract viewers, its clarity, and its overall design.\n\n"
    "Provide scores for engagement, clarity, and color. Also, give a final one-sentence verdict and a "
    "few actionable suggestions for improvement. Keep the tone encouraging."
)

LOCALIZED_PROMPT = (
    "You are a YouTube thumbnail reviewer. Analyze the provided thumbnail image for click appeal, "
    "readability on small screens, and color contrast.\n\n"
    "Score engagement, clarity, and color from 0 to 100, write a one-sentence verdict, and list 2 to 4 "
    "concrete suggestions. Write the verdict and every suggestion in {language} only."
)


@dataclass(frozen=True)
class CritiquePrompt:
    """Prompt wording sent with the image; the output schema is the same for every variant."""

    variant: str
    instructions: str

    @classmethod
    def general(cls) -> "CritiquePrompt":
        return cls("general", GENERAL_PROMPT)

    @classmethod
    def localized(cls, language: str) -> "CritiquePrompt":
        return cls("localized", LOCALIZED_PROMPT.format(language=language))

    @classmethod
    def from_config(cls) -> "CritiquePrompt":
        """Pick the variant named by CRITIQUE_PROMPT."""
        if get_critique_prompt_variant() == "localized":
            return cls.localized(get_critique_language())
        return cls.general()


@dataclass(frozen=True)
class CritiqueResult:
    """Structured critique of one thumbnail."""

    engagement_score: float
    clarity_score: float
    color_score: float
    overall_verdict: str
    suggestions: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "CritiqueResult":
        """
        Build a result from the tool call arguments.

        Raises:
            CritiqueError: If a field is missing, a score is outside 0-100,
                or the number of suggestions is outside 2-4
        """
        try:
            scores = [float(payload[name]) for name in SCORE_FIELDS]
            verdict = str(payload["overallVerdict"]).strip()
            suggestions = [str(item).strip() for item in payload["suggestions"]]
        except (KeyError, TypeError, ValueError) as e:
            raise CritiqueError(
                f"Critique output is missing or malformed: {e}", code="critique_invalid_output"
            ) from e

        out_of_range = [name for name, score in zip(SCORE_FIELDS, scores) if not 0 <= score <= 100]
        if out_of_range:
            raise CritiqueError(
                f"Critique scores out of range: {out_of_range}",
                code="critique_invalid_output",
                details={"fields": out_of_range},
            )
        if not MIN_SUGGESTIONS <= len(suggestions) <= MAX_SUGGESTIONS:
            raise CritiqueError(
                f"Expected {MIN_SUGGESTIONS}-{MAX_SUGGESTIONS} suggestions, got {len(suggestions)}",
                code="critique_invalid_output",
                details={"suggestion_count": len(suggestions)},
            )
        if not verdict:
            raise CritiqueError("Critique verdict is empty", code="critique_invalid_output")

        return cls(
            engagement_score=scores[0],
            clarity_score=scores[1],
            color_score=scores[2],
            overall_verdict=verdict,
            suggestions=suggestions,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire field names."""
        return {
            "engagementScore": self.engagement_score,
            "clarityScore": self.clarity_score,
            "colorScore": self.color_score,
            "overallVerdict": self.overall_verdict,
            "suggestions": list(self.suggestions),
        }


def build_inputs(prompt: CritiquePrompt, image_data_uri: str) -> list[dict[str, Any]]:
    """Build the Responses API input: instructions, then the image."""
    return [
        {
            "type": "message",
            "role": "system",
            "content": [{"type": "input_text", "text": prompt.instructions}],
        },
        {
            "type": "message",
            "role": "user",
            "content": [
                {"type": "input_text", "text": "Critique this thumbnail."},
                {"type": "input_image", "image_url": image_data_uri},
            ],
        },
    ]


def parse_function_call(response: Any, *, tool_name: str = FUNCTION_NAME) -> dict[str, Any]:
    """
    Extract the arguments of the critique tool call.

    Raises:
        CritiqueError: If the response has no such call or its arguments are not JSON
    """
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) == "function_call" and getattr(item, "name", None) == tool_name:
            try:
                return json.loads(getattr(item, "arguments", None) or "{}")
            except json.JSONDecodeError as e:
                raise CritiqueError(
                    f"Critique arguments are not valid JSON: {e}", code="critique_invalid_output"
                ) from e
    raise CritiqueError(f"No function_call output for '{tool_name}' in response", code="critique_invalid_output")


class CritiqueService:
    """Stateless critique client: image data URI in, CritiqueResult out."""

    def __init__(self, client: AsyncOpenAI, model: str | None = None, prompt: CritiquePrompt | None = None) -> None:
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model or get_critique_model()
        self.prompt = prompt or CritiquePrompt.from_config()

    async def critique(self, image_data_uri: str) -> CritiqueResult:
        """
        Critique one thumbnail.

        Args:
            image_data_uri: ``data:<mime>;base64,<payload>`` string of the image

        Raises:
            EncodingError: If the input is not a data URI
            CritiqueError: If the service fails or answers outside the schema
        """
        mime_type, _ = parse_data_uri(image_data_uri)
        if not mime_type.startswith("image/"):
            raise CritiqueError(
                f"Cannot critique non-image data ({mime_type})",
                code="critique_not_image",
                user_message="Only images can be critiqued.",
            )

        start_time = time.perf_counter()
        response = await self._create_response(build_inputs(self.prompt, image_data_uri))
        result = CritiqueResult.from_payload(parse_function_call(response))

        log_performance(
            "critique_thumbnail",
            time.perf_counter() - start_time,
            model=self.model,
            prompt_variant=self.prompt.variant,
            engagement_score=result.engagement_score,
        )
        return result

    async def _create_response(self, inputs: list[dict[str, Any]]) -> Any:
        """Send the request and map client errors to CritiqueError."""
        try:
            return await self.client.responses.create(
                model=self.model,
                input=inputs,
                tools=[FUNCTION_DEFINITION],
                tool_choice={"type": "function", "name": FUNCTION_NAME},
            )
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            raise CritiqueError(
                f"Could not reach the critique service: {e}",
                code="critique_unreachable",
                original_exception=e,
            ) from e
        except openai.APIStatusError as e:
            raise CritiqueError(
                f"Critique service returned {e.status_code}: {e.message}",
                code="critique_rejected",
                details={"status_code": e.status_code},
                original_exception=e,
            ) from e
        except openai.OpenAIError as e:
            raise CritiqueError(
                f"Critique request failed: {e}",
                code="critique_failed",
                original_exception=e,
            ) from e
