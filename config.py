"""
Default values for the new-csr command line via Pydantic Settings.

Built per run by main.parse_options, never at import time.  Every flag
default can be overridden by a ``NEW_CSR_*`` environment variable
or a .env file.  Values given on the command line always win.
"""
from __future__ import annotations

from typing import List

from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    DotEnvSettingsSource,
    EnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from pki.request import HASH_ALGORITHMS


class _CommaFallbackMixin:
    """Return the raw string when JSON parsing fails.

    pydantic-settings calls json.loads() on complex-typed fields (List[str])
    before field_validators run, so ``www.example.com,api.example.com`` would
    raise SettingsError.  Handing back the raw string lets parse_alt_dns split
    it on commas.
    """

    def prepare_field_value(self, field_name, field, value, value_is_complex):  # type: ignore[override]
        try:
            return super().prepare_field_value(field_name, field, value, value_is_complex)  # type: ignore[misc]
        except ValueError:
            return value


class _CSVEnvSource(_CommaFallbackMixin, EnvSettingsSource):
    pass


class _CSVDotEnvSource(_CommaFallbackMixin, DotEnvSettingsSource):
    pass


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="NEW_CSR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Key / signature ────────────────────────────────────────────────────
    EXPIRE_DAYS: int = 100
    RSA_BITS: int = 4096
    HASH: str = "sha256"

    # ── Subject ────────────────────────────────────────────────────────────
    COUNTRY: str = "US"
    STATE: str = "Denial"
    LOCALITY: str = "Close"
    ORGANIZATION: str = "Pretty Good"
    SECTION: str = "9"
    EMAIL: str = "webmaster@example.com"
    ALT_DNS: List[str] = []

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            _CSVEnvSource(settings_cls),
            _CSVDotEnvSource(settings_cls),
            file_secret_settings,
        )

    @field_validator("ALT_DNS", mode="before")
    @classmethod
    def parse_alt_dns(cls, v: object) -> List[str]:
        """Accept comma-separated string or list."""
        if isinstance(v, str):
            return [d.strip() for d in v.split(",") if d.strip()]
        return v  # type: ignore[return-value]

    @field_validator("EXPIRE_DAYS", "RSA_BITS")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("HASH")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        v = v.lower()
        if v not in HASH_ALGORITHMS:
            raise ValueError(f"HASH must be one of {sorted(HASH_ALGORITHMS)}")
        return v

