"""Configuration system for crake-wallet.

Loads wallet config from ``.crake-wallet/config.yaml``, supports environment
variable expansion, and provides the data directory layout.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from crake_wallet.wallet.chains import list_chain_names
from crake_wallet.wallet.history import HISTORY_KEY, MAX_HISTORY


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    If the variable is not set the placeholder is left as-is so that
    validation can catch it later.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class HistoryConfig(BaseModel):
    """Transaction history log settings."""

    key: str = HISTORY_KEY
    max_entries: int = Field(default=MAX_HISTORY, ge=1)


class FeeConfig(BaseModel):
    """Fee estimation settings."""

    default_gas_price_gwei: str = "20"  # used when the node reports no gas price


class StorageConfig(BaseModel):
    """Where history and the address book are persisted."""

    backend: Literal["sqlite", "memory"] = "sqlite"
    path: Optional[str] = None  # defaults to <data dir>/wallet.db


class WalletConfig(BaseModel):
    """Root configuration object."""

    default_chain: str = "ethereum"
    address: Optional[str] = None  # default sender for read-only commands
    rpc_urls: dict[str, str] = Field(default_factory=dict)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    fees: FeeConfig = Field(default_factory=FeeConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @field_validator("default_chain")
    @classmethod
    def _known_chain(cls, value: str) -> str:
        if value not in list_chain_names():
            raise ValueError(f"Unknown chain '{value}'. Available: {list_chain_names()}")
        return value


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def get_data_dir(base: Path | None = None, *, create: bool = True) -> Path:
    """Return the ``.crake-wallet/`` directory.

    Parameters
    ----------
    base:
        Parent directory that contains (or will contain) the data folder.
        Defaults to the ``CRAKE_WALLET_HOME`` environment variable, then
        the current working directory.
    create:
        If *True* (default), create the directory if it doesn't exist.
        Pass *False* for read-only lookups.
    """
    if base is None:
        base = Path(os.environ.get("CRAKE_WALLET_HOME", Path.cwd()))
    data_dir = Path(base) / ".crake-wallet"
    if create:
        data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def load_config(path: Path) -> WalletConfig:
    """Load and validate a wallet configuration from a YAML file.

    Environment variable placeholders (``${VAR}``) are expanded before
    validation. A missing file yields the defaults.
    """
    if not path.exists():
        return WalletConfig()
    raw_text = path.read_text(encoding="utf-8")
    raw_data = yaml.safe_load(raw_text) or {}
    expanded = _expand_env_recursive(raw_data)
    return WalletConfig.model_validate(expanded)


def save_config(config: WalletConfig, path: Path) -> None:
    """Serialize a :class:`WalletConfig` to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="python", exclude_none=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
