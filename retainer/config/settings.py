"""Settings: everything the agent loop can be tuned with.

Precedence, highest first: constructor arguments, `RETAINER_*` environment
variables (nested with `__`, e.g. `RETAINER_PROVIDERS__LLM__MODEL`), the
merged TOML files, then the defaults declared on the section models.
"""

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from retainer.config.models.agents import AgentsConfig
from retainer.config.models.learning import LearningConfig
from retainer.config.models.observability import ObservabilityConfig
from retainer.config.models.providers import ProvidersConfig
from retainer.config.models.reasoning import ReasoningConfig

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Feeds the TOML document registered with set_toml_config into Settings."""

    document: dict[str, Any] = {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:  # noqa: ARG002
        value = self.document.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return dict(self.document)


def set_toml_config(config: dict[str, Any]) -> None:
    """Register the merged TOML document read by later Settings() calls."""
    TomlConfigSettingsSource.document = config


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RETAINER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "retainer"
    debug: bool = False
    log_level: LogLevel = "INFO"

    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    reasoning: ReasoningConfig = Field(default_factory=ReasoningConfig)
    learning: LearningConfig = Field(default_factory=LearningConfig)
    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, TomlConfigSettingsSource(settings_cls)
