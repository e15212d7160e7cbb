"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from environment variables prefixed with CA_BUNDLE_
  - Fall back to a .env file
  - Validate types and vocabulary labels at startup

Sub-settings are plain BaseModel classes populated via env_nested_delimiter="__",
so CA_BUNDLE_FETCH__TIMEOUT_SECONDS maps to fetch.timeout_seconds. Structured
values (the country table, the filter list) are given as JSON:

    CA_BUNDLE_FETCH__COUNTRIES='{"IT": "https://eidas.agid.gov.it/TL/TSL-IT.xml"}'
    CA_BUNDLE_FILTERS='[{"type": "CA/QC", "status": "granted", "extension": "eSeals"}]'
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ca_bundle_extractor.domain.models import FilterPolicy, FilterRule
from ca_bundle_extractor.domain.vocabulary import (
    ServiceExtension,
    ServiceStatus,
    ServiceType,
    parse_label,
)

# Resolve the .env file relative to the project root (two levels above this file),
# so settings load correctly regardless of the working directory at runtime.
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"

DEFAULT_COUNTRY_URLS: dict[str, str] = {
    "IT": "https://eidas.agid.gov.it/TL/TSL-IT.xml",
}


class FetchSettings(BaseModel):
    """Remote trusted-list resolution used by the @fetch:XX source syntax."""

    countries: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_COUNTRY_URLS),
        description="Two-letter country code → trusted list URL",
    )
    lotl_url: str | None = Field(
        default=None,
        description="List of Trusted Lists consulted for countries missing from the table",
    )
    timeout_seconds: int = Field(default=60, ge=1)
    attempts: int = Field(default=3, ge=1, le=10, description="Download attempts on network errors")

    @field_validator("countries")
    @classmethod
    def normalize_countries(cls, value: dict[str, str]) -> dict[str, str]:
        """Upper-case the keys and reject anything that is not a two-letter code."""
        normalized: dict[str, str] = {}
        for code, url in value.items():
            if len(code) != 2 or not code.isalpha():
                raise ValueError(f"Country code must be two letters, got {code!r}")
            normalized[code.upper()] = url
        return normalized


class FilterRuleSettings(BaseModel):
    """
    One filter rule expressed with short labels.

    Omitted fields mean "don't care". Labels are checked against the
    vocabularies so a typo fails at startup instead of silently matching nothing.
    """

    type: str | None = None
    status: str | None = None
    extension: str | None = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str | None) -> str | None:
        if value is not None:
            parse_label(value, ServiceType)
        return value

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is not None:
            parse_label(value, ServiceStatus)
        return value

    @field_validator("extension")
    @classmethod
    def validate_extension(cls, value: str | None) -> str | None:
        if value is not None:
            parse_label(value, ServiceExtension)
        return value

    def to_rule(self) -> FilterRule:
        return FilterRule(
            required_type=None if self.type is None else parse_label(self.type, ServiceType),
            required_status=None if self.status is None else parse_label(self.status, ServiceStatus),
            required_extension=(
                None if self.extension is None else parse_label(self.extension, ServiceExtension)
            ),
        )


def _default_filters() -> list[FilterRuleSettings]:
    return [FilterRuleSettings(type="CA/QC", status="granted", extension="eSignatures")]


class AppSettings(BaseSettings):
    """
    Root application settings — aggregates all sub-settings.

    Load order (highest priority first):
      1. Environment variables (CA_BUNDLE_*)
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="CA_BUNDLE_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    fetch: FetchSettings = Field(default_factory=lambda: FetchSettings())
    filters: list[FilterRuleSettings] = Field(default_factory=_default_filters)
    log_level: str = Field(default="WARNING")

    def policy(self) -> FilterPolicy:
        """The configured filters as an immutable FilterPolicy."""
        return tuple(rule.to_rule() for rule in self.filters)
