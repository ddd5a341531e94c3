"""
LLM client used for document analysis and document chat.

Providers, selected by LLM_PROVIDER:
- "gemini" (default): Google Gemini generateContent REST API
- "openai": any OpenAI-compatible chat completions endpoint

Embeddings are not routed through here; see apps.indexing.embedder and
apps.rag.embeddings.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Dict, Any, Optional

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass
class LLMMessage:
    role: str  # "system", "user", or "assistant"
    content: str


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[Dict[str, int]] = None

    @property
    def total_tokens(self) -> Optional[int]:
        if not self.usage:
            return None
        return self.usage.get('total_tokens')


class LLMError(Exception):
    """Raised when an LLM call fails."""
    pass


class BaseLLMClient(ABC):

    @abstractmethod
    def chat(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.2,
        max_tokens: int = 1024,
        json_output: bool = False,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: Conversation, optionally starting with a system message
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens in the response
            json_output: Ask the provider for a JSON-only response

        Raises:
            LLMError: If the request fails or the response is empty
        """

    @property
    @abstractmethod
    def model_name(self) -> str:
        pass

    def _post(self, provider: str, url: str, body: dict, headers: Optional[dict] = None) -> dict:
        try:
            with httpx.Client(timeout=float(self.timeout)) as client:
                response = client.post(url, json=body, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"{provider} HTTP error: {e}")
            detail = _error_detail(e.response) or str(e)
            raise LLMError(f"{provider} API error {e.response.status_code}: {detail}")
        except ValueError:
            logger.error(f"{provider} returned a body that is not JSON")
            raise LLMError(f"{provider} API returned invalid JSON")
        except httpx.TimeoutException:
            logger.error(f"{provider} request timed out")
            raise LLMError(f"{provider} API timed out")
        except httpx.RequestError as e:
            logger.error(f"{provider} connection error: {e}")
            raise LLMError(f"Could not connect to {provider} API")

        if not isinstance(data, dict):
            raise LLMError(f"{provider} API returned an unexpected payload")
        return data


def _error_detail(response: httpx.Response) -> Optional[str]:
    """The provider's error message, which is either {"error": {"message"}} or {"error": "..."}."""
    try:
        error = response.json().get("error")
    except (ValueError, AttributeError):
        return None
    if isinstance(error, dict):
        error = error.get("message")
    return str(error) if error else None


class GeminiClient(BaseLLMClient):

    def __init__(self):
        self.api_key = settings.GEMINI_API_KEY
        self.model = settings.GEMINI_MODEL
        self.timeout = settings.GEMINI_TIMEOUT
        self.base_url = settings.GEMINI_BASE_URL

        if not self.api_key:
            raise LLMError("GEMINI_API_KEY not configured")

    @property
    def model_name(self) -> str:
        return self.model

    def chat(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.2,
        max_tokens: int = 1024,
        json_output: bool = False,
    ) -> LLMResponse:
        logger.info(f"Calling Gemini API: model={self.model}, temp={temperature}, json={json_output}")

        # System messages go to systemInstruction; assistant turns are "model"
        system_parts = [{"text": m.content} for m in messages if m.role == "system"]
        contents = [
            {
                "role": "model" if m.role == "assistant" else "user",
                "parts": [{"text": m.content}],
            }
            for m in messages if m.role != "system"
        ]

        generation_config: Dict[str, Any] = {
            "temperature": temperature,
            "maxOutputTokens": max_tokens,
            "topP": 0.95,
        }
        if json_output:
            generation_config["responseMimeType"] = "application/json"

        body: Dict[str, Any] = {"contents": contents, "generationConfig": generation_config}
        if system_parts:
            body["systemInstruction"] = {"parts": system_parts}

        data = self._post(
            "Gemini",
            f"{self.base_url}/models/{self.model}:generateContent",
            body,
            headers={"x-goog-api-key": self.api_key},
        )

        candidates = data.get("candidates") or []
        if not candidates:
            reason = (data.get("promptFeedback") or {}).get("blockReason")
            if reason:
                raise LLMError(f"Request blocked by Gemini: {reason}")
            raise LLMError("No response from Gemini API")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        content = "".join(p.get("text", "") for p in parts)
        if not content:
            raise LLMError("Empty text in Gemini response")

        usage = None
        meta = data.get("usageMetadata")
        if meta:
            usage = {
                "prompt_tokens": meta.get("promptTokenCount", 0),
                "completion_tokens": meta.get("candidatesTokenCount", 0),
                "total_tokens": meta.get("totalTokenCount", 0),
            }

        logger.info(f"Gemini response: {len(content)} chars")
        return LLMResponse(content=content, model=self.model, usage=usage)


class OpenAICompatibleClient(BaseLLMClient):
    """
    Client for OpenAI-compatible APIs (OpenAI, Azure OpenAI, Groq, local
    servers, ...).
    """

    def __init__(self):
        self.api_key = settings.OPENAI_API_KEY
        self.base_url = settings.OPENAI_BASE_URL
        self.model = settings.OPENAI_MODEL
        self.timeout = settings.OPENAI_TIMEOUT

        if not self.api_key:
            raise LLMError("OPENAI_API_KEY not configured")

    @property
    def model_name(self) -> str:
        return self.model

    def chat(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.2,
        max_tokens: int = 1024,
        json_output: bool = False,
    ) -> LLMResponse:
        logger.info(f"Calling OpenAI API: model={self.model}, temp={temperature}, json={json_output}")

        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_output:
            body["response_format"] = {"type": "json_object"}

        data = self._post(
            "OpenAI",
            f"{self.base_url}/chat/completions",
            body,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

        choices = data.get("choices") or []
        if not choices:
            raise LLMError("No choices in OpenAI response")

        content = (choices[0].get("message") or {}).get("content") or ""
        if not content:
            raise LLMError("Empty response from OpenAI")

        logger.info(f"OpenAI response: {len(content)} chars")
        return LLMResponse(content=content, model=self.model, usage=data.get("usage"))


_client_instance: Optional[BaseLLMClient] = None


def get_llm_client() -> BaseLLMClient:
    """
    Get the configured LLM client (cached after the first call).

    Raises:
        LLMError: If the provider's API key is missing
    """
    global _client_instance

    if _client_instance is not None:
        return _client_instance

    provider = (settings.LLM_PROVIDER or 'gemini').lower()

    if provider == 'openai':
        logger.info("Using OpenAI-compatible API for LLM inference")
        _client_instance = OpenAICompatibleClient()
    else:
        if provider != 'gemini':
            logger.warning(f"Unknown LLM_PROVIDER '{provider}', using Gemini")
        logger.info("Using Gemini API for LLM inference")
        _client_instance = GeminiClient()

    return _client_instance


def reset_llm_client():
    """Reset the cached client instance. Useful for testing."""
    global _client_instance
    _client_instance = None
