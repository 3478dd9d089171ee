"""
PinAuth Configuration — validated settings.

Reads optional overrides from environment variables:
    PINAUTH_KEY_ALIAS = <key store alias>
    PINAUTH_DIGITS = <code length, 1..9>
    PINAUTH_TICK_INTERVAL = <seconds between countdown ticks>
    PINAUTH_STORAGE_PATH = <path to the JSON preferences file>
"""
import os
import logging
from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

logger = logging.getLogger("pinauth.conf")

DEFAULT_KEY_ALIAS = "auth_key"
PIN_NONCE_KEY = "user_pin_iv"
PIN_CIPHERTEXT_KEY = "user_pin_enc"
PIN_LENGTH = 6
WINDOW_MILLIS = 30_000


class AuthenticatorConfig(BaseModel):
    """Validated authenticator configuration."""

    key_alias: str = Field(default=DEFAULT_KEY_ALIAS, min_length=1)
    nonce_key: str = Field(default=PIN_NONCE_KEY, min_length=1)
    ciphertext_key: str = Field(default=PIN_CIPHERTEXT_KEY, min_length=1)
    digits: int = Field(default=6, ge=1, le=9)
    tick_interval: float = Field(default=1.0, gt=0, le=1.0)
    storage_path: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("ciphertext_key")
    @classmethod
    def validate_distinct_entries(cls, v: str, info: ValidationInfo) -> str:
        """Nonce and ciphertext must live under different entries."""
        if v == info.data.get("nonce_key"):
            raise ValueError(
                f"ciphertext_key must differ from nonce_key ({v!r})"
            )
        return v

    @classmethod
    def from_env(cls) -> "AuthenticatorConfig":
        """Create AuthenticatorConfig from PINAUTH_* environment variables.

        Unset variables keep their defaults.

        Returns:
            Populated AuthenticatorConfig instance.
        """
        values = {}
        alias = os.environ.get("PINAUTH_KEY_ALIAS")
        if alias:
            values["key_alias"] = alias
        digits = os.environ.get("PINAUTH_DIGITS")
        if digits:
            values["digits"] = int(digits)
        interval = os.environ.get("PINAUTH_TICK_INTERVAL")
        if interval:
            values["tick_interval"] = float(interval)
        path = os.environ.get("PINAUTH_STORAGE_PATH")
        if path:
            values["storage_path"] = path
        logger.debug("Loaded config overrides: %s", sorted(values.keys()))
        return cls(**values)
