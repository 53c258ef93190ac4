"""
Typed, immutable options for one new-csr run.
"""
from __future__ import annotations

from typing import Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from pki.request import HASH_ALGORITHMS


class CsrOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    verbose: int = 0
    # CSRs have no validity period; kept for a later issuance step.
    expire_days: int = 100
    rsa_bits: int = 4096
    hash_algorithm: str = "sha256"

    country: str = "US"
    state: str = "Denial"
    locality: str = "Close"
    organization: str = "Pretty Good"
    section: str = "9"
    cn: str
    # Parsed but not placed into the subject.
    email: str = "webmaster@example.com"
    alt_dns: Tuple[str, ...] = ()

    out_key: str
    out_csr: str

    @field_validator("verbose")
    @classmethod
    def validate_verbose(cls, v: int) -> int:
        if v < 0:
            raise ValueError("verbose must not be negative")
        return v

    @field_validator("hash_algorithm")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        v = v.lower()
        if v not in HASH_ALGORITHMS:
            raise ValueError(f"hash must be one of {sorted(HASH_ALGORITHMS)}")
        return v

    @field_validator("cn", "out_key", "out_csr")
    @classmethod
    def validate_required(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v
