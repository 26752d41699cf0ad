"""Open Trivia DB question source.

https://opentdb.com/api_config.php
"""

import html
import logging
import uuid
from typing import Any

import httpx
import numpy as np
from pydantic import ValidationError

from furlong.config import QuestionSourceConfig
from furlong.errors import QuestionSourceError
from furlong.models import TriviaQuestion

logger = logging.getLogger(__name__)

# API response codes: 0 success, 1 no results, 2 invalid parameter,
# 3 token not found, 4 token empty, 5 rate limited
RESPONSE_OK = 0


class OpenTriviaSource:
    """Fetches multiple-choice questions from Open Trivia DB."""

    MAX_AMOUNT = 50  # API limit per request

    def __init__(
        self,
        config: QuestionSourceConfig | None = None,
        client: httpx.AsyncClient | None = None,
        rng: np.random.Generator | None = None,
    ):
        """Initialize the source.

        Args:
            config: Endpoint, timeout and default filters
            client: Shared HTTP client; a short-lived one is created per request otherwise
            rng: Random number generator used to shuffle answer options
        """
        self.config = config or QuestionSourceConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self._client = client

    async def fetch(
        self,
        amount: int = 10,
        difficulty: str | None = None,
        category: int | None = None,
    ) -> list[TriviaQuestion]:
        """Fetch up to ``amount`` questions (capped at 50).

        Raises:
            QuestionSourceError: On transport errors, non-2xx status,
                non-zero ``response_code`` or malformed payloads
        """
        params: dict[str, str] = {
            "amount": str(max(1, min(amount, self.MAX_AMOUNT))),
            "type": "multiple",
        }
        difficulty = difficulty or self.config.difficulty
        category = category or self.config.category
        if difficulty:
            params["difficulty"] = difficulty
        if category:
            params["category"] = str(category)

        data = await self._get_json("/api.php", params)

        code = data.get("response_code")
        if code != RESPONSE_OK:
            raise QuestionSourceError(f"Open Trivia DB response_code: {code}")

        results = data.get("results")
        if not isinstance(results, list):
            raise QuestionSourceError("Open Trivia DB payload has no results list")

        batch = uuid.uuid4().hex[:8]
        questions = [self._transform(item, f"api-{batch}-{i}") for i, item in enumerate(results)]
        logger.debug("Fetched %d questions from Open Trivia DB", len(questions))
        return questions

    async def fetch_categories(self) -> list[dict[str, Any]]:
        """Fetch available categories as ``[{"id": ..., "name": ...}]``."""
        data = await self._get_json("/api_category.php", None)
        categories = data.get("trivia_categories")
        if not isinstance(categories, list):
            raise QuestionSourceError("Open Trivia DB payload has no trivia_categories list")
        return categories

    def _transform(self, item: Any, question_id: str) -> TriviaQuestion:
        """Decode entities, shuffle options and track the correct index."""
        try:
            correct = html.unescape(item["correct_answer"])
            options = [html.unescape(a) for a in item["incorrect_answers"]] + [correct]
            order = self.rng.permutation(len(options))
            shuffled = tuple(options[int(i)] for i in order)
            return TriviaQuestion(
                id=question_id,
                text=html.unescape(item["question"]),
                options=shuffled,
                correct_index=shuffled.index(correct),
                category=html.unescape(item.get("category") or "General"),
            )
        except (KeyError, TypeError, AttributeError, ValidationError) as ex:
            raise QuestionSourceError(f"Malformed question payload: {ex}") from ex

    async def _get_json(self, path: str, params: dict[str, str] | None) -> dict[str, Any]:
        try:
            if self._client is not None:
                response = await self._client.get(self._url(path), params=params)
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout_s) as client:
                    response = await client.get(self._url(path), params=params)
        except httpx.HTTPError as ex:
            raise QuestionSourceError(f"Open Trivia DB request failed: {type(ex).__name__}: {ex}") from ex

        if not response.is_success:
            raise QuestionSourceError(f"Open Trivia DB HTTP status {response.status_code}")

        try:
            data = response.json()
        except ValueError as ex:
            raise QuestionSourceError(f"Open Trivia DB returned invalid JSON: {ex}") from ex
        if not isinstance(data, dict):
            raise QuestionSourceError("Open Trivia DB payload is not an object")
        return data

    def _url(self, path: str) -> str:
        return self.config.base_url.rstrip("/") + path
