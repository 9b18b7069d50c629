from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from openai import AsyncOpenAI, OpenAIError

from .extraction.errors import ModelCallError
from .extraction.prompts import PromptPayload

logger = logging.getLogger(__name__)


class CompletionClient:
    """Chat-completion collaborator for any OpenAI-compatible endpoint."""

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        client: Optional[Any] = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.json_mode = json_mode
        self._client = client or AsyncOpenAI(base_url=base_url or None, api_key=api_key or None)

    async def complete(self, payload: PromptPayload) -> str:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": payload.messages(),
            "temperature": self.temperature,
        }
        if self.max_tokens:
            kwargs["max_tokens"] = self.max_tokens
        if self.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            raise ModelCallError(str(e)) from e

        if not response.choices:
            raise ModelCallError("LLM returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ModelCallError("LLM returned an empty message")
        logger.debug(f"Completion returned {len(content)} chars")
        return content
