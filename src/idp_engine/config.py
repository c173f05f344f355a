"""Engine settings loaded from the environment (prefix ``IDP_ENGINE_``)."""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from idp_engine import __version__


class DefinitionFailurePolicy(StrEnum):
    """What a resolution pass does when an attribute definition fails."""

    ABORT = "abort"  # propagate to the caller; no partial result
    SKIP = "skip"  # log, omit the attribute and its dependents, keep going


class EngineSettings(BaseSettings):
    """Runtime options for the attribute resolver and the bundled connectors.

    Attributes:
        definition_failure_policy: Behaviour when an attribute definition fails.
        strip_empty_attributes: Drop attributes without values from the output.
        http_timeout: Default request timeout for ``HTTPDataConnector``, in seconds.
        http_user_agent: User-Agent header sent by ``HTTPDataConnector``.
    """

    model_config = SettingsConfigDict(
        env_prefix="IDP_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    definition_failure_policy: DefinitionFailurePolicy = Field(
        default=DefinitionFailurePolicy.ABORT,
        description="abort | skip",
    )
    strip_empty_attributes: bool = Field(default=True)
    http_timeout: float = Field(default=10.0, gt=0)
    http_user_agent: str = Field(default=f"idp-attribute-engine/{__version__}")


@lru_cache
def get_settings() -> EngineSettings:
    """Get cached settings instance."""
    return EngineSettings()
