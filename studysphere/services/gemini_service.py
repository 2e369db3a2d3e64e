"""
StudySphere — StudyPlanGenerator: Gemini-backed study plan generation.

Turns a group's subject and free-text notes (the workspace scratchpad) into a
structured five-day ``StudyPlan``.  It orchestrates:

- A prompt asking for daily goals, key concepts and suggested activities
- JSON-mode generation constrained by a response schema
- A model fallback chain with exponential-backoff retry on transient errors
- JSON extraction from the raw response text (direct, code fence, braces)
- Strict validation: a plan with any missing or malformed field is a failure,
  never a partial plan

Model fallback chain:
    GEMINI_MODEL_PRIMARY -> GEMINI_MODEL_FALLBACK

Every failure surfaces as ``PlanGenerationError`` so callers can tell "the
generator failed" apart from "no plan has been generated yet".
"""

from __future__ import annotations

import json
import re
import time

import google.generativeai as genai
import structlog
from google.generativeai.types import HarmBlockThreshold, HarmCategory
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from studysphere.config import get_settings
from studysphere.exceptions import PlanGenerationError
from studysphere.schemas.group import StudyPlan

logger = structlog.get_logger("studysphere.gemini_service")

PLAN_DAYS = 5

# OpenAPI-style subset accepted by ``GenerationConfig.response_schema``.
STUDY_PLAN_RESPONSE_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "plan": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "day": {"type": "integer"},
                    "goal": {"type": "string"},
                    "concepts": {"type": "array", "items": {"type": "string"}},
                    "activities": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["day", "goal", "concepts", "activities"],
            },
        },
    },
    "required": ["plan"],
}


def _is_retryable_api_error(exc: BaseException) -> bool:
    """Return True if the exception signals a retryable Gemini API error.

    Retries HTTP 429 (rate limit) and 500/503 (server-side transient) errors.
    The SDK wraps these in several exception types, so both the type name and
    the message are inspected.
    """
    exc_str = str(exc).lower()
    exc_type = type(exc).__name__.lower()

    if "429" in exc_str or "resource_exhausted" in exc_str:
        return True
    if "500" in exc_str or "503" in exc_str or "internal" in exc_str:
        return True
    if "resourceexhausted" in exc_type or "serviceunavailable" in exc_type:
        return True

    return False


class StudyPlanGenerator:
    """Generate a validated multi-day study plan for a subject."""

    def __init__(self) -> None:
        settings = get_settings()

        genai.configure(api_key=settings.GEMINI_API_KEY)

        self._model_chain: list[str] = [
            settings.GEMINI_MODEL_PRIMARY,    # "gemini-2.5-flash"
            settings.GEMINI_MODEL_FALLBACK,   # "gemini-2.0-flash"
        ]

        self._safety_settings = {
            HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        }

        self._generation_config = genai.GenerationConfig(
            max_output_tokens=settings.GEMINI_MAX_OUTPUT_TOKENS,
            response_mime_type="application/json",
            response_schema=STUDY_PLAN_RESPONSE_SCHEMA,
        )

        logger.info("study_plan_generator_initialised", model_chain=self._model_chain)

    # ══════════════════════════════════════════════════════════════════
    # Public API
    # ══════════════════════════════════════════════════════════════════

    async def generate_study_plan(self, subject: str, notes: str = "") -> StudyPlan:
        """Generate a study plan for ``subject`` covering ``notes``.

        Parameters
        ----------
        subject:
            Display name of the subject (e.g. ``"Maths"``).
        notes:
            Free-text topics to cover.  Blank notes produce a general
            introductory plan.

        Returns
        -------
        StudyPlan
            A plan in which every day carries a goal, concepts and activities.

        Raises
        ------
        PlanGenerationError
            If no model in the chain returns a response that parses and
            satisfies the StudyPlan schema.
        """
        log = logger.bind(subject=subject, has_notes=bool(notes.strip()))
        log.info("generate_study_plan_start")
        start_time = time.monotonic()

        prompt = self._build_plan_prompt(subject, notes)

        last_exception: Exception | None = None
        for model_name in self._model_chain:
            try:
                response_text = await self._call_gemini_with_retry(model_name, prompt)
            except Exception as exc:
                last_exception = exc
                log.warning("model_fallback", failed_model=model_name, error=str(exc))
                continue

            try:
                plan = self._parse_plan(response_text)
            except PlanGenerationError as exc:
                last_exception = exc
                log.warning("model_plan_rejected", failed_model=model_name, error=str(exc))
                continue

            log.info(
                "generate_study_plan_complete",
                model=model_name,
                days=len(plan.plan),
                elapsed_ms=round((time.monotonic() - start_time) * 1000, 2),
            )
            return plan

        log.error("generate_study_plan_exhausted", last_error=str(last_exception))
        raise PlanGenerationError(
            f"All models in chain exhausted for subject={subject!r}. "
            f"Last error: {last_exception}"
        ) from last_exception

    # ══════════════════════════════════════════════════════════════════
    # Gemini call
    # ══════════════════════════════════════════════════════════════════

    async def _call_gemini_with_retry(self, model_name: str, prompt: str) -> str:
        """Call one Gemini model, retrying transient errors.

        Exponential backoff: 1s initial wait, 2x multiplier, 30s max wait, up
        to 5 attempts.
        """
        model = genai.GenerativeModel(model_name)

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_is_retryable_api_error),
                stop=stop_after_attempt(5),
                wait=wait_exponential(multiplier=1, min=1, max=30, exp_base=2),
                reraise=True,
            ):
                with attempt:
                    logger.debug(
                        "gemini_call_attempt",
                        model=model_name,
                        attempt_number=attempt.retry_state.attempt_number,
                    )
                    response = await model.generate_content_async(
                        prompt,
                        safety_settings=self._safety_settings,
                        generation_config=self._generation_config,
                    )

                    if not response.candidates:
                        raise ValueError(
                            f"Gemini returned no candidates for model "
                            f"{model_name}. Prompt feedback: "
                            f"{response.prompt_feedback}"
                        )

                    text = response.text
                    if not text or not text.strip():
                        raise ValueError(f"Gemini returned empty text for model {model_name}")

                    return text

        except RetryError as retry_err:
            logger.error(
                "gemini_retry_exhausted",
                model=model_name,
                last_error=str(retry_err.last_attempt.exception()),
            )
            raise retry_err.last_attempt.exception() from retry_err

    # ══════════════════════════════════════════════════════════════════
    # Prompt construction
    # ══════════════════════════════════════════════════════════════════

    @staticmethod
    def _build_plan_prompt(subject: str, notes: str) -> str:
        topics = notes.strip()
        if topics:
            coverage = (
                "Cover these topics, taken from the group's shared notes:\n"
                f"\"\"\"\n{topics}\n\"\"\""
            )
        else:
            coverage = (
                "No topics were provided. Create a general introductory plan "
                "for the subject."
            )

        return (
            f"Generate a {PLAN_DAYS}-day study plan for the subject \"{subject}\" "
            "for a small group of high-school students studying together.\n\n"
            f"{coverage}\n\n"
            "For each day give:\n"
            "- day: the day number, starting at 1\n"
            "- goal: one sentence stating the day's goal\n"
            "- concepts: the key concepts to learn (at least one)\n"
            "- activities: suggested group activities (at least one)\n\n"
            "Respond with a single JSON object of the form "
            "{\"plan\": [{\"day\": 1, \"goal\": \"...\", \"concepts\": [\"...\"], "
            "\"activities\": [\"...\"]}, ...]} and nothing else."
        )

    # ══════════════════════════════════════════════════════════════════
    # Response parsing
    # ══════════════════════════════════════════════════════════════════

    def _parse_plan(self, text: str) -> StudyPlan:
        """Parse and validate a raw response into a ``StudyPlan``."""
        try:
            payload = self._parse_json_response(text)
            return StudyPlan.model_validate(payload)
        except (ValueError, ValidationError) as exc:
            logger.warning("study_plan_invalid", error=str(exc), preview=text[:80])
            raise PlanGenerationError(f"Generated study plan is invalid: {exc}") from exc

    def _parse_json_response(self, text: str) -> dict:
        """Parse a JSON object from a Gemini response.

        Pipeline:
        1. Direct ``json.loads`` on the raw text
        2. Markdown code-fence extraction
        3. Substring between the first ``{`` and the last ``}``

        Raises
        ------
        ValueError
            If no strategy yields a JSON object.
        """
        if not text or not text.strip():
            raise ValueError("Empty response text, cannot parse JSON")

        cleaned = text.strip()

        # Strategy 1: Direct parse
        try:
            result = json.loads(cleaned)
            if isinstance(result, dict):
                return result
        except (json.JSONDecodeError, TypeError):
            pass

        # Strategy 2: Markdown code fence
        md_match = re.search(r"```(?:json)?\s*\n?(.*?)\n?\s*```", cleaned, re.DOTALL)
        if md_match:
            try:
                result = json.loads(md_match.group(1).strip())
                if isinstance(result, dict):
                    return result
            except (json.JSONDecodeError, TypeError):
                pass

        # Strategy 3: Outermost braces
        first_brace = cleaned.find("{")
        last_brace = cleaned.rfind("}")
        if first_brace >= 0 and last_brace > first_brace:
            try:
                result = json.loads(cleaned[first_brace : last_brace + 1])
                if isinstance(result, dict):
                    return result
            except (json.JSONDecodeError, TypeError):
                pass

        raise ValueError(f"Could not extract a JSON object from response: {cleaned[:80]!r}")
