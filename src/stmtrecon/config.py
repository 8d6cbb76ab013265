"""Runtime settings for the reconciliation pipeline."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_PREFIX = "STMTRECON_"


@dataclass(frozen=True)
class Settings:
    """Pipeline settings passed explicitly into services."""

    actor: str = "system"
    securities_asset_type: str = "SCR01"
    cash_asset_type: str = "CSH01"
    split_type_code: str = "SL"
    error_message_limit: int = 1000
    batch_size: int = 500


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Load settings, applying STMTRECON_* environment overrides.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Settings instance

    Raises:
        ValueError: If a numeric override is not an integer
    """
    if environ is None:
        environ = os.environ
    defaults = Settings()

    def text(name: str, default: str) -> str:
        return environ.get(ENV_PREFIX + name.upper(), default)

    def number(name: str, default: int) -> int:
        value = environ.get(ENV_PREFIX + name.upper())
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}{name.upper()} must be an integer, got '{value}'")

    return Settings(
        actor=text("actor", defaults.actor),
        securities_asset_type=text("securities_asset_type", defaults.securities_asset_type),
        cash_asset_type=text("cash_asset_type", defaults.cash_asset_type),
        split_type_code=text("split_type_code", defaults.split_type_code),
        error_message_limit=number("error_message_limit", defaults.error_message_limit),
        batch_size=number("batch_size", defaults.batch_size),
    )
