"""
Text Generation Capability

The narrow boundary between the extraction core and the language model.
Everything in the core depends on the ``TextGenerator`` protocol; the default
implementation talks to SAP AI Core through the gen_ai_hub proxy.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from knowledge_core.config import Settings, get_settings
from knowledge_core.errors import (
    CredentialError,
    EmptyResponseError,
    GenerationError,
    GenerationNetworkError,
    MissingCredentialError,
    RateLimitError,
)
from knowledge_core.services.credential_store import resolve_credential

logger = logging.getLogger(__name__)

Message = Dict[str, str]  # {"role": ..., "content": ...}


@dataclass
class GenerationOptions:
    max_tokens: int = 4000
    temperature: float = 0.3
    timeout_ms: int = 120000
    credential_override: Optional[str] = None


class TextGenerator(Protocol):
    async def generate(
        self, messages: List[Message], options: GenerationOptions
    ) -> str: ...


_AUTH_MARKERS = ("401", "403", "unauthorized", "authentication", "invalid_client", "api key")
_RATE_MARKERS = ("429", "rate limit", "ratelimit", "too many requests", "quota")
_NETWORK_MARKERS = ("timeout", "timed out", "connection", "network", "unreachable")


def to_langchain_messages(messages: List[Message]) -> List[BaseMessage]:
    converted: List[BaseMessage] = []
    for message in messages:
        role = message.get("role", "user")
        content = message.get("content", "")
        if role == "system":
            converted.append(SystemMessage(content=content))
        elif role == "assistant":
            converted.append(AIMessage(content=content))
        else:
            converted.append(HumanMessage(content=content))
    return converted


def classify_generation_failure(error: Exception) -> GenerationError:
    """Map an SDK/transport exception to the typed generation errors."""
    if isinstance(error, GenerationError):
        return error
    if isinstance(error, asyncio.TimeoutError):
        return GenerationNetworkError("Generation request timed out")

    text = f"{type(error).__name__}: {error}".lower()
    if any(marker in text for marker in _AUTH_MARKERS):
        return CredentialError(f"Generation service rejected credentials: {error}")
    if any(marker in text for marker in _RATE_MARKERS):
        return RateLimitError(f"Generation service rate limit: {error}")
    if any(marker in text for marker in _NETWORK_MARKERS):
        return GenerationNetworkError(f"Generation service unreachable: {error}")
    return GenerationError(f"Generation failed: {error}")


class GenAIHubTextGenerator:
    """
    TextGenerator backed by gen_ai_hub's LangChain ChatOpenAI proxy.

    The credential is the AI Core client secret. A per-call override takes
    precedence over the runtime credential store and settings.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._proxy_clients: Dict[str, object] = {}

    def _proxy_client(self, client_secret: str):
        if client_secret not in self._proxy_clients:
            from gen_ai_hub.proxy.core.proxy_clients import get_proxy_client

            kwargs = {
                "client_id": resolve_credential(
                    "aicore_client_id", None, self.settings.aicore_client_id
                ),
                "client_secret": client_secret,
                "auth_url": self.settings.aicore_auth_url,
                "base_url": self.settings.aicore_base_url,
                "resource_group": self.settings.aicore_resource_group,
            }
            self._proxy_clients[client_secret] = get_proxy_client(
                "gen-ai-hub", **{k: v for k, v in kwargs.items() if v}
            )
        return self._proxy_clients[client_secret]

    def _build_llm(self, client_secret: str, options: GenerationOptions):
        from gen_ai_hub.proxy.langchain.openai import ChatOpenAI

        return ChatOpenAI(
            proxy_model_name=self.settings.llm_model,
            proxy_client=self._proxy_client(client_secret),
            temperature=options.temperature,
            max_tokens=options.max_tokens,
        )

    async def generate(
        self, messages: List[Message], options: GenerationOptions
    ) -> str:
        """
        Run one chat completion.

        Raises:
            MissingCredentialError: No client secret configured anywhere
            CredentialError: Credentials rejected
            RateLimitError: Rate limit or quota exhausted
            GenerationNetworkError: Timeout or transport failure
            EmptyResponseError: Model returned no text
        """
        client_secret = resolve_credential(
            "aicore_client_secret",
            options.credential_override,
            self.settings.aicore_client_secret,
        )
        if not client_secret:
            raise MissingCredentialError("No AI Core client secret configured")

        try:
            llm = self._build_llm(client_secret, options)
            response = await asyncio.wait_for(
                llm.ainvoke(to_langchain_messages(messages)),
                timeout=options.timeout_ms / 1000,
            )
        except GenerationError:
            raise
        except Exception as e:
            error = classify_generation_failure(e)
            logger.error(f"Generation call failed: {error}")
            raise error from e

        content = getattr(response, "content", response)
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        if not content or not str(content).strip():
            raise EmptyResponseError("Generation service returned an empty response")
        return str(content)
