"""Configuration settings for the application."""

from typing import (
    Dict,
    List,
)

from pydantic import (
    Field,
    SecretStr,
)
from pydantic_settings import BaseSettings

from scholia.core.schema import (
    ProviderConfig,
    ProviderModels,
)


def default_model_catalog() -> Dict[str, ProviderModels]:
    """Default model per provider, plus the cheaper variant the scan pass uses (if any)."""
    return {
        # No cheaper DeepSeek variant: long documents use bounded prefixes instead of a scan
        "deepseek": ProviderModels(
            default_model="deepseek-chat",
            cheap_model=None,
            model_prefix="deepseek-",
            verbose=True,
        ),
        "gemini": ProviderModels(
            default_model="gemini-1.5-pro",
            cheap_model="gemini-1.5-flash",
            verbose=True,
        ),
        "openai": ProviderModels(default_model="gpt-4o", cheap_model="gpt-4o-mini"),
        "anthropic": ProviderModels(
            default_model="claude-3-5-sonnet-latest", cheap_model="claude-3-5-haiku-latest"
        ),
    }


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # LLM Configuration
    PROVIDER: str = "deepseek"  # Options: deepseek, gemini, openai, anthropic
    MODEL_ID: str | None = None  # Falls back to the catalog default of PROVIDER
    DEEPSEEK_API_KEY: SecretStr | None = None
    GEMINI_API_KEY: SecretStr | None = None
    OPENAI_API_KEY: SecretStr | None = None
    ANTHROPIC_API_KEY: SecretStr | None = None
    REQUEST_TIMEOUT: float = 120.0
    STRICT_MODEL_NAMES: bool = False  # Fail instead of substituting a mismatched model id
    ANTHROPIC_MAX_TOKENS: int = 4096
    RESPONSE_LANGUAGE: str | None = None
    MODEL_CATALOG: Dict[str, ProviderModels] = Field(default_factory=default_model_catalog)

    # Context windowing (characters)
    FAST_CONTEXT_CHARS: int = 15000
    STEP_CONTEXT_CHARS: int = 8000
    HISTORY_CONTEXT_CHARS: int = 3000
    SCAN_THRESHOLD_CHARS: int = 12000
    ALL_RELEVANT_CHARS: int = 30000
    MAX_PLAN_STEPS: int = 3

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"

    def credentials(self) -> Dict[str, str]:
        """Return the ``provider -> API key`` map for every configured provider."""
        keys = {
            "deepseek": self.DEEPSEEK_API_KEY,
            "gemini": self.GEMINI_API_KEY,
            "openai": self.OPENAI_API_KEY,
            "anthropic": self.ANTHROPIC_API_KEY,
        }
        return {name: key.get_secret_value() for name, key in keys.items() if key is not None}

    def default_model(self, provider: str | None = None) -> str:
        provider = provider or self.PROVIDER
        if provider == self.PROVIDER and self.MODEL_ID:
            return self.MODEL_ID
        models = self.MODEL_CATALOG.get(provider)
        if models is None:
            raise ValueError(f"No model catalog entry for provider '{provider}'.")
        return models.default_model

    def provider_configs(self) -> List[ProviderConfig]:
        """Credential plus default model for every configured provider."""
        return [
            ProviderConfig(
                provider=name, model_id=self.default_model(name), credential=SecretStr(key)
            )
            for name, key in self.credentials().items()
            if name in self.MODEL_CATALOG
        ]


settings = Settings()
