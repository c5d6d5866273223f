import asyncio
import logging
import time
from abc import ABC, abstractmethod
from types import ModuleType
from typing import Any, Optional

import anthropic
import openai
from anthropic import AsyncAnthropic
from openai import AsyncAzureOpenAI, AsyncOpenAI

from config.settings import Settings
from models.generation import PromptContext
from models.note import StructuredNote
from .exceptions import (
    ProviderAuthError, ProviderError, ProviderNetworkError,
    ProviderRateLimitError, ProviderTimeoutError
)
from .prompt_builder import SYSTEM_INSTRUCTION
from .response_extractor import extract_note
from .rule_based_extractor import RuleBasedExtractor

logger = logging.getLogger(__name__)


class GenerationStrategy(ABC):
    """One tier of the generation chain"""

    name: str = "strategy"

    @abstractmethod
    async def generate(self, transcript: str, context: PromptContext) -> StructuredNote:
        """Produce a note or raise GenerationError"""


def translate_provider_error(sdk: ModuleType, provider: str, error: Exception) -> ProviderError:
    """Map an anthropic/openai SDK exception onto the provider error taxonomy"""
    if isinstance(error, (sdk.AuthenticationError, sdk.PermissionDeniedError)):
        return ProviderAuthError(f"{provider} rejected credentials: {error}")
    if isinstance(error, sdk.RateLimitError):
        return ProviderRateLimitError(f"{provider} rate limit: {error}")
    # APITimeoutError subclasses APIConnectionError in both SDKs
    if isinstance(error, sdk.APITimeoutError):
        return ProviderTimeoutError(f"{provider} request timed out")
    if isinstance(error, sdk.APIConnectionError):
        return ProviderNetworkError(f"{provider} connection failed: {error}")
    if isinstance(error, sdk.APIStatusError):
        return ProviderNetworkError(f"{provider} API error {error.status_code}: {error}")
    return ProviderNetworkError(f"{provider} API error: {error}")


class LLMStrategy(GenerationStrategy):
    """
    Shared flow for provider-backed tiers: one call, no retry, and the
    output always goes through the response extractor.
    """

    sdk: ModuleType

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    @abstractmethod
    def _create_client(self) -> Any:
        """Build the SDK client; raise ProviderAuthError when unconfigured"""

    @abstractmethod
    async def _complete(self, prompt: str) -> str:
        """Single provider call returning raw text"""

    async def generate(self, transcript: str, context: PromptContext) -> StructuredNote:
        start_time = time.monotonic()
        try:
            # The SDK timeout bounds each network phase; this bounds the whole call
            raw_text = await asyncio.wait_for(
                self._complete(context.prompt),
                timeout=self.settings.provider_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"{self.name} exceeded {self.settings.provider_timeout_seconds:g}s"
            ) from e
        except self.sdk.APIError as e:
            raise translate_provider_error(self.sdk, self.name, e) from e

        note = extract_note(raw_text)
        elapsed = time.monotonic() - start_time
        logger.info(f"{self.name}: note generated in {elapsed:.2f}s ({len(raw_text)} chars)")
        return note


class AnthropicStrategy(LLMStrategy):
    """Primary tier: free-form completion, JSON pulled out of the text"""

    name = "anthropic"
    sdk = anthropic

    def _create_client(self) -> AsyncAnthropic:
        if not self.settings.anthropic_api_key:
            raise ProviderAuthError("ANTHROPIC_API_KEY is not configured")
        return AsyncAnthropic(
            api_key=self.settings.anthropic_api_key,
            timeout=self.settings.provider_timeout_seconds,
            max_retries=0
        )

    async def _complete(self, prompt: str) -> str:
        response = await self.client.messages.create(
            model=self.settings.anthropic_model,
            system=SYSTEM_INSTRUCTION,
            max_tokens=self.settings.max_output_tokens,
            temperature=self.settings.temperature,
            messages=[{"role": "user", "content": prompt}]
        )
        return "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )


class OpenAIStrategy(LLMStrategy):
    """Secondary tier: provider JSON mode, still validated like free text"""

    name = "openai"
    sdk = openai

    def _create_client(self) -> AsyncOpenAI:
        if not self.settings.openai_api_key:
            raise ProviderAuthError("OPENAI_API_KEY is not configured")
        if self.settings.azure_openai_endpoint:
            return AsyncAzureOpenAI(
                api_key=self.settings.openai_api_key,
                api_version=self.settings.azure_openai_api_version,
                azure_endpoint=self.settings.azure_openai_endpoint,
                timeout=self.settings.provider_timeout_seconds,
                max_retries=0
            )
        return AsyncOpenAI(
            api_key=self.settings.openai_api_key,
            timeout=self.settings.provider_timeout_seconds,
            max_retries=0
        )

    async def _complete(self, prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.settings.openai_model,
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt}
            ],
            response_format={"type": "json_object"},
            max_tokens=self.settings.max_output_tokens,
            temperature=self.settings.temperature
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class RuleBasedStrategy(GenerationStrategy):
    """Last tier: deterministic and total for any non-empty transcript"""

    name = "rule_based"

    def __init__(self, extractor: Optional[RuleBasedExtractor] = None):
        self.extractor = extractor or RuleBasedExtractor()

    async def generate(self, transcript: str, context: PromptContext) -> StructuredNote:
        return self.extractor.extract(transcript, context.specialty)
