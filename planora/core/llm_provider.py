from __future__ import annotations

import asyncio
from typing import Any

import google.generativeai as genai  # type: ignore


class LLMProvider:
    def __init__(self, model: str, api_key: str) -> None:
        self.model = model
        if not api_key:
            raise RuntimeError("GOOGLE_API_KEY is not set")
        genai.configure(api_key=api_key)
        # Accept both "gemini-2.5-flash" and the prefixed "google-genai:gemini-2.5-flash"
        model_id = model.split(":", 1)[1] if ":" in model else model
        self._model = genai.GenerativeModel(model_id)

    def chat(self, messages: list[dict[str, Any]], temperature: float = 1.0) -> str:
        """Send a chat completion request. messages: list of dicts with keys: role (system|user|assistant), content (str)"""
        system = "\n".join(m.get("content", "") for m in messages if m.get("role") == "system")
        # Map the remaining OpenAI-style messages to a single prompt
        prompt = "\n".join(
            f"{m.get('role', 'user')}: {m.get('content', '')}"
            for m in messages
            if m.get("role") != "system"
        )
        if system:
            prompt = f"{system}\n\n{prompt}"
        response = self._model.generate_content(
            prompt,
            generation_config=genai.GenerationConfig(temperature=temperature),
        )
        return response.text or ""

    async def chat_async(
        self, messages: list[dict[str, Any]], temperature: float = 1.0
    ) -> str:
        """Runs the blocking client in a worker thread."""
        return await asyncio.to_thread(self.chat, messages, temperature)
