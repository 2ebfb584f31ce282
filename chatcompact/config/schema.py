"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CompactionConfig(BaseModel):
    """History compaction tunables."""
    max_history_messages: int = Field(default=20, gt=0)  # Sliding window when no summary is needed
    summary_threshold: int = Field(default=20, gt=0)  # Turns kept verbatim once summarizing
    summary_max_tokens: int = Field(default=300, gt=0)  # Hard cap on summary length
    summary_temperature: float = 0.3
    model: str = "anthropic/claude-sonnet-4-5"
    single_flight: bool = True  # Share one summary call between concurrent identical misses


class ProviderConfig(BaseModel):
    """LLM provider configuration."""
    api_key: str = ""
    api_base: str | None = None


class ProvidersConfig(BaseModel):
    """Configuration for LLM providers."""
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    gemini: ProviderConfig = Field(default_factory=ProviderConfig)


class StoreConfig(BaseModel):
    """Durable summary store configuration."""
    enabled: bool = True
    path: str = "~/.chatcompact/summaries"
    auto_create: bool = True  # If false, a missing directory means "not provisioned"


class Config(BaseSettings):
    """Root configuration for chatcompact."""
    compaction: CompactionConfig = Field(default_factory=CompactionConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    model_config = SettingsConfigDict(
        env_prefix="CHATCOMPACT_",
        env_nested_delimiter="__",
    )

    @property
    def store_path(self) -> Path:
        """Get expanded durable store path."""
        return Path(self.store.path).expanduser()

    @property
    def provider_name(self) -> str:
        """Provider prefix of the summary model, e.g. 'anthropic'."""
        model = self.compaction.model
        return model.split("/")[0] if "/" in model else "anthropic"

    def get_provider_config(self) -> ProviderConfig:
        """Provider settings for the summary model's provider."""
        return getattr(self.providers, self.provider_name, None) or self.providers.anthropic
