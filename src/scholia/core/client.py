"""
Multi-provider client.

Holds the long-lived, read-only state of the core (credential map, model catalog, optional
shared HTTP client) and dispatches each canonical request to the registered adapter.
"""

import logging
from typing import (
    Dict,
    Iterable,
    List,
    Mapping,
    Sequence,
)

import httpx

from scholia.config import (
    Settings,
    default_model_catalog,
)
from scholia.core.errors import MissingCredentialError
from scholia.core.schema import (
    CanonicalResponse,
    ChatMessage,
    ProviderConfig,
    ProviderModels,
)
from scholia.providers import (
    BaseProvider,
    get_provider_class,
)

logger = logging.getLogger(__name__)


class MultiProviderClient:
    """Routes ``send`` calls to the adapter registered for each provider."""

    def __init__(
        self,
        credentials: Mapping[str, str],
        catalog: Mapping[str, ProviderModels] | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 120.0,
        strict_model_names: bool = False,
        max_output_tokens: int = 4096,
    ) -> None:
        self._credentials = {name.lower(): key for name, key in credentials.items() if key}
        self._catalog = dict(catalog if catalog is not None else default_model_catalog())
        self._http_client = http_client
        self._timeout = timeout
        self._strict_model_names = strict_model_names
        self._max_output_tokens = max_output_tokens
        self._adapters: Dict[str, BaseProvider] = {}

    @classmethod
    def from_settings(
        cls, cfg: Settings, http_client: httpx.AsyncClient | None = None
    ) -> "MultiProviderClient":
        return cls(
            credentials=cfg.credentials(),
            catalog=cfg.MODEL_CATALOG,
            http_client=http_client,
            timeout=cfg.REQUEST_TIMEOUT,
            strict_model_names=cfg.STRICT_MODEL_NAMES,
            max_output_tokens=cfg.ANTHROPIC_MAX_TOKENS,
        )

    @classmethod
    def from_configs(
        cls, configs: Iterable[ProviderConfig], **kwargs: object
    ) -> "MultiProviderClient":
        credentials = {c.provider: c.credential.get_secret_value() for c in configs}
        return cls(credentials=credentials, **kwargs)  # type: ignore[arg-type]

    # ------------------------------------------------------------------ #
    # Catalog / credential lookups
    # ------------------------------------------------------------------ #
    def has_credential(self, provider: str) -> bool:
        return provider.lower() in self._credentials

    def require_credential(self, provider: str) -> str:
        """Return the credential for *provider* or raise :class:`MissingCredentialError`."""
        key = self._credentials.get(provider.lower())
        if not key:
            logger.error("No API key for provider: %s", provider)
            raise MissingCredentialError(provider)
        return key

    def configured_providers(self) -> List[str]:
        return sorted(self._credentials)

    def models_for(self, provider: str) -> ProviderModels | None:
        return self._catalog.get(provider.lower())

    def is_verbose(self, provider: str) -> bool:
        models = self.models_for(provider)
        return bool(models and models.verbose)

    def cheap_model(self, provider: str) -> str | None:
        models = self.models_for(provider)
        return models.cheap_model if models else None

    def adapter(self, provider: str) -> BaseProvider:
        """Return (and cache) the adapter instance for *provider*."""
        name = provider.lower()
        cls = get_provider_class(name)
        credential = self.require_credential(name)
        if name not in self._adapters:
            self._adapters[name] = cls(
                credential=credential,
                models=self.models_for(name),
                http_client=self._http_client,
                timeout=self._timeout,
                strict_model_names=self._strict_model_names,
                max_output_tokens=self._max_output_tokens,
            )
        return self._adapters[name]

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    async def send(
        self,
        provider: str,
        model_id: str,
        messages: Sequence[ChatMessage],
        temperature: float | None = None,
    ) -> CanonicalResponse:
        """
        Send one canonical chat request.

        Raises
        ------
        MissingCredentialError
            No credential is registered for *provider* (raised before any network I/O).
        UnknownProviderError
            No adapter is registered under *provider*.
        ProviderError
            The vendor call failed or its reply could not be normalized.
        """
        adapter = self.adapter(provider)
        logger.info("AI request: %s / %s", provider, model_id)
        response = await adapter.send(model_id, messages, temperature=temperature)
        logger.debug("AI response from %s: %d chars", provider, len(response.text))
        return response
