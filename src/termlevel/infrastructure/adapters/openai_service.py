import base64
import json
import logging
import math
import re
from typing import Any

import httpx

from termlevel.domain.constants import (
    FALLBACK_MODEL_ANSWER,
    FALLBACK_SCORE,
    GRADING_MAX_TOKENS,
    GRADING_TEMPERATURE,
    QUESTION_MAX_TOKENS,
    QUESTION_TEMPERATURE,
    REQUEST_TIMEOUT,
    SCORE_MAX,
    SCORE_MIN,
)
from termlevel.domain.errors import (
    ConfigurationError,
    GradingServiceError,
    QuestionServiceError,
    RecognitionError,
    ServiceError,
)
from termlevel.domain.models import GradeResult
from termlevel.domain.ports import GradingService, ImageToTextService, QuestionService

QUESTION_SYSTEM_PROMPT = (
    "You write questions for a study app. Given a term, write one question that "
    "checks whether the learner understands it."
)
GRADING_SYSTEM_PROMPT = (
    "You grade answers for a study app. Score the learner's answer out of 100 and give "
    "detailed feedback and a model answer. Reply in JSON: "
    '{"score": number, "feedback": "text", "modelAnswer": "text"}'
)
OCR_PROMPT = "Transcribe all text in this image. Output only the text."

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def parse_grade(content: str) -> GradeResult:
    """
    Turn the grader's reply into a GradeResult.

    Accepts bare JSON or JSON wrapped in prose/markdown fences. An unparseable
    reply falls back to a neutral score with the raw text as feedback.
    Fractional scores are floored so 69.6 stays below the pass mark.

    Raises:
        GradingServiceError: the reply parsed but its score is missing or outside 0..100.
    """
    match = _JSON_OBJECT.search(content)
    try:
        data = json.loads(match.group(0) if match else content)
    except json.JSONDecodeError:
        data = None

    if not isinstance(data, dict):
        return GradeResult(score=FALLBACK_SCORE, feedback=content, model_answer=FALLBACK_MODEL_ANSWER)

    raw_score = data.get("score")
    try:
        # bool is an int subclass; float(True) would pass
        if isinstance(raw_score, bool):
            raise ValueError(raw_score)
        score = float(raw_score)
    except (TypeError, ValueError):
        raise GradingServiceError(f"Grader returned a non-numeric score: {raw_score!r}") from None
    if not SCORE_MIN <= score <= SCORE_MAX:
        raise GradingServiceError(f"Grader returned an out-of-range score: {raw_score!r}")

    return GradeResult(
        score=math.floor(score),
        feedback=str(data.get("feedback") or ""),
        model_answer=str(data.get("modelAnswer") or data.get("model_answer") or ""),
    )


class OpenAIChatService(QuestionService, GradingService, ImageToTextService):
    """Adapter for the OpenAI chat-completions HTTP API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ConfigurationError(
                "OpenAI API key is not set. Export OPENAI_API_KEY or set "
                "openai_api_key in ~/.config/termlevel/config.toml."
            )
        self.api_key = api_key
        self.model = model
        self.url = base_url.rstrip("/") + "/chat/completions"
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self._client = client

    async def generate_question(self, term_name: str) -> str:
        messages = [
            {"role": "system", "content": QUESTION_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"Write one question about the following term. Output only the question.\n\n{term_name}",
            },
        ]
        try:
            content = await self._complete(messages, QUESTION_TEMPERATURE, QUESTION_MAX_TOKENS)
        except ServiceError as e:
            raise QuestionServiceError(f"Question generation failed: {e}") from e
        return content

    async def grade_answer(
        self, term_name: str, description: str, question: str, user_answer: str
    ) -> GradeResult:
        messages = [
            {"role": "system", "content": GRADING_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    "Grade the learner's answer using the information below.\n\n"
                    f"[Term]\n{term_name}\n{description}\n\n"
                    f"[Question]\n{question}\n\n"
                    f"[Learner's answer]\n{user_answer}\n\n"
                    "Return JSON with score (0-100), feedback and modelAnswer."
                ),
            },
        ]
        try:
            content = await self._complete(messages, GRADING_TEMPERATURE, GRADING_MAX_TOKENS)
        except ServiceError as e:
            raise GradingServiceError(f"Grading failed: {e}") from e
        return parse_grade(content)

    async def recognize(self, image: bytes, mime_type: str = "image/png") -> str:
        data_url = f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": OCR_PROMPT},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            }
        ]
        try:
            return await self._complete(messages, 0.0, GRADING_MAX_TOKENS)
        except ServiceError as e:
            raise RecognitionError(f"Text recognition failed: {e}") from e

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _complete(self, messages: list[dict[str, Any]], temperature: float, max_tokens: int) -> str:
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        try:
            resp = await self._client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            self.logger.error(f"OpenAI request failed: {e}")
            raise ServiceError(str(e) or type(e).__name__) from e

        if resp.status_code >= 400:
            message = self._error_message(resp)
            self.logger.error(f"OpenAI API error {resp.status_code}: {message}")
            raise ServiceError(f"OpenAI API Error: {message}")

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ServiceError(f"Unexpected OpenAI response: {e}") from e

        if not isinstance(content, str):
            raise ServiceError("Unexpected OpenAI response: empty content")
        return content.strip()

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            return resp.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return "Unknown error"
