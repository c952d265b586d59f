"""
Provider adapters for Scholia.

This package is the only place that *directly* talks to an LLM vendor.  Everything else (router,
planner, orchestrator, document tasks) works with :class:`~scholia.core.schema.ChatMessage`
lists and :class:`~scholia.core.schema.CanonicalResponse` objects.

Vendors supported out of the box:

1. **OpenAI** and **DeepSeek** via the OpenAI chat-completions wire format.
2. **Google Gemini** via the Generative Language REST API.
3. **Anthropic** via the Messages API.

Additional vendors can be added by subclassing :class:`BaseProvider` and registering via
:func:`register_provider`.
"""

import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    List,
    Mapping,
    Sequence,
    Tuple,
    Type,
)

import httpx

from scholia.core.errors import (
    ProviderError,
    UnknownProviderError,
)
from scholia.core.schema import (
    CanonicalResponse,
    ChatMessage,
    ProviderModels,
    Role,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_PROVIDER_REGISTRY: dict[str, Type["BaseProvider"]] = {}


def register_provider(name: str) -> Callable:
    """Decorator to register a provider adapter class under *name*."""

    def wrapper(cls: Type["BaseProvider"]) -> Type["BaseProvider"]:
        cls.name = name
        _PROVIDER_REGISTRY[name] = cls
        return cls

    return wrapper


def get_provider_class(name: str) -> Type["BaseProvider"]:
    """Return the adapter class registered under *name*."""
    cls = _PROVIDER_REGISTRY.get(name.lower())
    if cls is None:
        raise UnknownProviderError(name)
    return cls


def registered_providers() -> List[str]:
    return sorted(_PROVIDER_REGISTRY)


# ---------------------------------------------------------------------------
# Message helpers shared by vendors that keep the system prompt out of the turn list
# ---------------------------------------------------------------------------
def merge_consecutive(messages: Sequence[ChatMessage]) -> List[ChatMessage]:
    """Join adjacent messages from the same role so turns strictly alternate."""
    merged: List[ChatMessage] = []
    for msg in messages:
        if merged and merged[-1].role == msg.role:
            merged[-1] = ChatMessage(
                role=msg.role, content=f"{merged[-1].content}\n\n{msg.content}"
            )
        else:
            merged.append(msg)
    return merged


def split_system(messages: Sequence[ChatMessage]) -> Tuple[str | None, List[ChatMessage]]:
    """
    Separate the system prompt from the conversation turns.

    If nothing but a system prompt is left, it is returned as a single user turn instead (and the
    system part becomes ``None``), because an empty turn list is rejected by these vendors.
    """
    system_parts = [m.content for m in messages if m.role == Role.SYSTEM]
    turns = merge_consecutive([m for m in messages if m.role != Role.SYSTEM])
    system = "\n\n".join(system_parts) if system_parts else None

    if not turns and system is not None:
        return None, [ChatMessage.user(system)]
    return system, turns


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BaseProvider(ABC):
    """Abstract adapter: canonical chat request -> vendor call -> canonical response."""

    name: ClassVar[str] = ""

    def __init__(
        self,
        credential: str,
        models: ProviderModels | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 120.0,
        strict_model_names: bool = False,
        max_output_tokens: int = 4096,
    ) -> None:
        self.credential = credential
        self.models = models
        self.http_client = http_client
        self.timeout = timeout
        self.strict_model_names = strict_model_names
        self.max_output_tokens = max_output_tokens

    def resolve_model(self, model_id: str) -> str:
        """
        Return the model id to send.

        When the catalog declares a naming prefix and *model_id* does not match it, the default
        model is substituted (or :class:`ProviderError` is raised in strict mode).
        """
        if self.models is None or not self.models.model_prefix:
            return model_id
        if model_id.startswith(self.models.model_prefix):
            return model_id
        if self.strict_model_names:
            raise ProviderError(
                self.name,
                f"model '{model_id}' does not match the '{self.models.model_prefix}' naming",
            )
        logger.warning(
            "Model mismatch: %s cannot be used with %s. Swapping to %s.",
            model_id,
            self.name,
            self.models.default_model,
        )
        return self.models.default_model

    async def send(
        self,
        model_id: str,
        messages: Sequence[ChatMessage],
        temperature: float | None = None,
    ) -> CanonicalResponse:
        """Send *messages* to the vendor and return the normalized reply."""
        model = self.resolve_model(model_id)
        used_temp = DEFAULT_TEMPERATURE if temperature is None else temperature
        return await self._complete(model, list(messages), used_temp)

    @abstractmethod
    async def _complete(
        self, model: str, messages: List[ChatMessage], temperature: float
    ) -> CanonicalResponse:
        """Perform exactly one vendor call."""

    # ------------------------------------------------------------------ #
    # Transport helpers
    # ------------------------------------------------------------------ #
    def _sdk_kwargs(self) -> Dict[str, Any]:
        """Constructor arguments shared by the vendor SDK clients (no SDK-side retries)."""
        kwargs: Dict[str, Any] = {
            "api_key": self.credential,
            "max_retries": 0,
            "timeout": self.timeout,
        }
        if self.http_client is not None:
            kwargs["http_client"] = self.http_client
        return kwargs

    async def _post_json(
        self, url: str, payload: Mapping[str, Any], headers: Mapping[str, str]
    ) -> httpx.Response:
        """POST *payload* using the shared client if one was injected, else a short-lived one."""
        try:
            if self.http_client is not None:
                return await self.http_client.post(
                    url, json=payload, headers=headers, timeout=self.timeout
                )
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("%s request error: %s", self.name, str(e))
            raise ProviderError(self.name, f"request failed: {e}") from e


# Register the built-in adapters.
from scholia.providers import (  # noqa: E402  pylint: disable=wrong-import-position
    anthropic_messages,
    gemini,
    openai_compat,
)

__all__ = [
    "BaseProvider",
    "DEFAULT_TEMPERATURE",
    "anthropic_messages",
    "gemini",
    "get_provider_class",
    "merge_consecutive",
    "openai_compat",
    "register_provider",
    "registered_providers",
    "split_system",
]
