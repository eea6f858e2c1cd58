"""
Provider-agnostic LLM client for the support assistant.

One instance serves both the routing classifier and the answer synthesizer.
Each provider contributes a connect step and a generate step; everything the
SDKs raise during generation is reported as GenerationFailure.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Dict, Optional

from .errors import GenerationFailure

logger = logging.getLogger("support_assistant.common.llm_client")

PROVIDERS = ("anthropic", "openai", "google")


class LLMClient:
    """Text generation over Anthropic, OpenAI or Google Gemini."""

    def __init__(
        self,
        provider: str = "google",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "google").lower()
        self.model = model
        self._client = None
        self._gemini_models: Dict[str, object] = {}

        if self.provider not in PROVIDERS:
            logger.warning("Unsupported LLM provider: %s", self.provider)
            return

        api_key = {
            "anthropic": anthropic_api_key,
            "openai": openai_api_key,
            "google": google_api_key,
        }[self.provider]
        if not api_key:
            logger.info("%s API key not provided, LLM client unavailable", self.provider)
            return

        connect = getattr(self, f"_connect_{self.provider}")
        try:
            self._client = connect(api_key)
        except Exception as e:
            logger.warning("Failed to initialize %s client: %s", self.provider, e)

    @classmethod
    def from_config(cls, llm_config) -> "LLMClient":
        """Build a client from an LLMConfig section."""
        return cls(
            provider=llm_config.provider,
            model=llm_config.model,
            anthropic_api_key=llm_config.anthropic_api_key or None,
            openai_api_key=llm_config.openai_api_key or None,
            google_api_key=llm_config.google_api_key or None,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 1000,
        timeout: float = 30.0,
    ) -> str:
        """Generate a completion.

        Raises:
            GenerationFailure: provider unavailable or the call failed. The
                message carries the provider's error text so callers can
                inspect it for quota / rate-limit conditions.
        """
        if not self.is_available:
            raise GenerationFailure("LLM client is not available")

        call = getattr(self, f"_generate_{self.provider}")
        try:
            return call(prompt, system, max_tokens, timeout)
        except Exception as e:
            raise GenerationFailure(f"{self.provider} generation failed: {e}") from e

    # connect

    @staticmethod
    def _connect_anthropic(api_key: str):
        import anthropic

        return anthropic.Anthropic(api_key=api_key)

    @staticmethod
    def _connect_openai(api_key: str):
        from openai import OpenAI

        return OpenAI(api_key=api_key)

    @staticmethod
    def _connect_google(api_key: str):
        import google.generativeai as genai

        genai.configure(api_key=api_key)
        # The module itself; models are built per system prompt.
        return genai

    # generate

    def _generate_anthropic(self, prompt: str, system: Optional[str], max_tokens: int, timeout: float) -> str:
        extra = {"system": system} if system else {}
        response = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
            timeout=timeout,
            **extra,
        )
        return response.content[0].text.strip()

    def _generate_openai(self, prompt: str, system: Optional[str], max_tokens: int, timeout: float) -> str:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        response = self._client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=messages,
            timeout=timeout,
        )
        return (response.choices[0].message.content or "").strip()

    def _generate_google(self, prompt: str, system: Optional[str], max_tokens: int, timeout: float) -> str:
        model = self._gemini_model(system)
        response = model.generate_content(
            prompt,
            generation_config={"max_output_tokens": max_tokens, "temperature": 0},
            request_options={"timeout": timeout},
        )
        return response.text.strip()

    def _gemini_model(self, system: Optional[str]):
        key = hashlib.md5((system or "").encode()).hexdigest()
        if key not in self._gemini_models:
            options = {"model_name": self.model}
            if system:
                options["system_instruction"] = system
            self._gemini_models[key] = self._client.GenerativeModel(**options)
        return self._gemini_models[key]
