from __future__ import annotations

import os
from typing import Optional

from openai import OpenAI


class OpenAIJsonClient:
    """Chat-completions wrapper that asks the model for a JSON object."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        temperature: float = 0.1,
        client: Optional[OpenAI] = None,
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if client is None and not self.api_key:
            raise RuntimeError("OPENAI_API_KEY is required for OpenAIJsonClient")
        self.model = model
        self.temperature = temperature
        self.client = client or OpenAI(api_key=self.api_key, timeout=timeout, max_retries=0)

    def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
        return response.choices[0].message.content or ""
