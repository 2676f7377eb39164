"""
LLM Client - Streaming answers from a cascade of providers.

Providers, in order:
1. Perplexity (search-capable, OpenAI-compatible endpoint)
2. Groq
3. Google Gemini

A provider without an API key is skipped. The next provider is tried
only while nothing has been streamed yet; once text has reached the
caller, a failure ends the answer with LLMError.
"""
import asyncio
from typing import AsyncIterator, Dict, List, Optional, Tuple

import google.generativeai as genai
from groq import AsyncGroq
from openai import AsyncOpenAI

from atheron.core.config import Settings, get_settings
from atheron.core.exceptions import LLMError
from atheron.core.logging_config import get_logger
from atheron.llm.prompts import get_system_prompt

logger = get_logger(__name__)

PERPLEXITY = "perplexity"
GROQ = "groq"
GOOGLE = "google"


class LLMClient:
    """
    Hybrid streaming client for Perplexity, Groq and Google Gemini.

    Example:
        >>> client = LLMClient()
        >>> async for chunk in client.stream([{"role": "user", "content": "Hi"}]):
        ...     print(chunk, end="")
    """

    def __init__(self, settings: Optional[Settings] = None, backoff_seconds: float = 1.0):
        self.settings = settings or get_settings()
        self.backoff_seconds = backoff_seconds
        self.temperature = self.settings.llm_temperature
        self.max_tokens = self.settings.llm_max_tokens

        self._perplexity: Optional[AsyncOpenAI] = None
        self._groq: Optional[AsyncGroq] = None

        if self.settings.perplexity_api_key:
            self._perplexity = AsyncOpenAI(
                api_key=self.settings.perplexity_api_key,
                base_url=self.settings.perplexity_base_url,
            )
        if self.settings.groq_api_key:
            self._groq = AsyncGroq(api_key=self.settings.groq_api_key)
        if self.settings.google_api_key:
            genai.configure(api_key=self.settings.google_api_key)

        self.cascade = self._build_cascade()
        logger.info(f"LLM Client initialized: {[f'{p}/{m}' for p, m in self.cascade]}")

    def _build_cascade(self) -> List[Tuple[str, str]]:
        cascade = []
        if self._perplexity is not None:
            cascade.append((PERPLEXITY, self.settings.llm_model))
        if self._groq is not None:
            cascade.append((GROQ, self.settings.llm_model_fallback))
        if self.settings.google_api_key:
            cascade.append((GOOGLE, self.settings.llm_model_google))
        return cascade

    async def stream(
        self,
        messages: List[Dict[str, str]],
        system_prompt: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """
        Stream the answer to a conversation.

        Args:
            messages: Ordered role/content dicts (user and assistant only)
            system_prompt: Overrides the Athey prompt

        Yields:
            Non-empty text chunks in arrival order

        Raises:
            LLMError: If no provider produced anything, or if the active
                provider failed mid-answer
        """
        if system_prompt is None:
            system_prompt = get_system_prompt()

        if not self.cascade:
            raise LLMError("No LLM provider is configured")

        last_error: Optional[Exception] = None

        for i, (provider, model) in enumerate(self.cascade):
            if i > 0:
                logger.info(f"Attempt {i + 1}: Falling back to {provider.title()} ({model})...")
                await asyncio.sleep(self.backoff_seconds * i)

            started = False
            try:
                async for chunk in self._provider_stream(provider, model, system_prompt, messages):
                    if not chunk:
                        continue
                    started = True
                    yield chunk
            except Exception as e:
                if started:
                    logger.error(f"Provider failed mid-answer ({provider}/{model}): {e}")
                    raise LLMError(f"Answer interrupted: {e}") from e

                error_msg = str(e).lower()
                is_rate_limit = "429" in error_msg or "quota" in error_msg or "rate limit" in error_msg
                log_level = logger.warning if is_rate_limit else logger.error
                log_level(f"Provider failed ({provider}/{model}): {e}")
                last_error = e
                continue

            if started:
                return

            logger.warning(f"Provider returned an empty answer ({provider}/{model})")
            last_error = LLMError(f"{provider} returned an empty answer")

        logger.critical("ALL LLM PROVIDERS FAILED.")
        raise LLMError(f"All LLM providers failed. Last error: {last_error}")

    def _provider_stream(
        self,
        provider: str,
        model: str,
        system_prompt: str,
        messages: List[Dict[str, str]],
    ) -> AsyncIterator[str]:
        if provider == PERPLEXITY:
            return self._stream_openai_compatible(self._perplexity, model, system_prompt, messages)
        if provider == GROQ:
            return self._stream_openai_compatible(self._groq, model, system_prompt, messages)
        return self._stream_google(model, system_prompt, messages)

    async def _stream_openai_compatible(self, client, model, system_prompt, messages) -> AsyncIterator[str]:
        """Chat Completions streaming (Perplexity and Groq share the wire format)."""
        request_messages = [{"role": "system", "content": system_prompt}]
        request_messages.extend(messages)

        stream = await client.chat.completions.create(
            model=model,
            messages=request_messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            stream=True,
        )
        async for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content

    async def _stream_google(self, model, system_prompt, messages) -> AsyncIterator[str]:
        """Gemini streaming chat."""
        model_instance = genai.GenerativeModel(
            model_name=model,
            system_instruction=system_prompt,
        )

        # Convert history format (OpenAI -> Google)
        chat_history = [
            {"role": "user" if msg["role"] == "user" else "model", "parts": [msg["content"]]}
            for msg in messages[:-1]
        ]
        chat = model_instance.start_chat(history=chat_history)

        response = await chat.send_message_async(
            messages[-1]["content"] if messages else "",
            generation_config=genai.types.GenerationConfig(
                temperature=self.temperature,
                max_output_tokens=self.max_tokens,
            ),
            stream=True,
        )
        async for chunk in response:
            try:
                text = chunk.text
            except ValueError as e:
                # Raised when a chunk has no text parts (safety block)
                raise LLMError("Content blocked by Google Safety filters") from e
            if text:
                yield text


# Module-level instance (singleton pattern)
_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get or create the LLM client instance."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client


def reset_llm_client() -> None:
    """Drop the singleton (used by tests)."""
    global _llm_client
    _llm_client = None
