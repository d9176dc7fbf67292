"""
Toolkit settings.

Defaults can be overridden per instance or through ECCKIT_* environment
variables, e.g. ECCKIT_DEFAULT_CURVE=384 or ECCKIT_REUSE_KEM=false.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .curves import CURVES
from .primitives import HASH_ALGORITHMS


ENV_PREFIX = "ECCKIT_"
DEFAULT_CURVE = "256"


class EccSettings(BaseModel):
    """Settings for an Ecc facade"""
    default_curve: str = DEFAULT_CURVE
    hash_algorithm: str = "sha256"
    reuse_kem: bool = True
    import_cache_size: Optional[int] = Field(default=None, ge=1)
    kem_cache_size: Optional[int] = Field(default=None, ge=1)
    decap_cache_size: Optional[int] = Field(default=None, ge=1)

    @field_validator("default_curve")
    @classmethod
    def _known_curve(cls, value: str) -> str:
        if value not in CURVES:
            raise ValueError(f"unknown curve {value!r}, expected one of {sorted(CURVES)}")
        return value

    @field_validator("hash_algorithm")
    @classmethod
    def _known_hash(cls, value: str) -> str:
        value = value.lower()
        if value not in HASH_ALGORITHMS:
            raise ValueError(f"unsupported hash {value!r}, expected one of {sorted(HASH_ALGORITHMS)}")
        return value

    @classmethod
    def from_env(cls, environ=None) -> "EccSettings":
        """
        Build settings from ECCKIT_* variables.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        return cls(**values)
