"""
Configuration management for nftjson.

Loads the engine settings from environment variables or a ``.env`` file,
and holds the named defaults used by the convenience constructors.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from nftjson.schema.types import NfFamily

ENV_LOCATIONS = (
    Path.home() / ".nftjson" / ".env",
    Path.home() / ".config" / "nftjson" / ".env",
    Path.cwd() / ".env",
)

NFT_EXECUTABLE = "nft"  # resolved through PATH
DEFAULT_LIST_ARGS = ("list", "ruleset")


def load_env_files() -> Path | None:
    """Load the first ``.env`` file found, returning its path."""
    for env_path in ENV_LOCATIONS:
        if env_path.exists():
            load_dotenv(env_path)
            return env_path
    return None


@dataclass(frozen=True)
class ObjectDefaults:
    """Identity defaults for convenience constructors."""

    family: NfFamily = NfFamily.INET
    table: str = "filter"
    chain: str = "forward"


DEFAULT_OBJECTS = ObjectDefaults()


@dataclass
class NftConfig:
    """Engine and logging configuration."""

    nft_program: str = NFT_EXECUTABLE
    list_args: tuple[str, ...] = DEFAULT_LIST_ARGS
    log_level: str = "WARNING"
    log_file: str | None = None

    @classmethod
    def from_env(cls) -> "NftConfig":
        """Load configuration from environment variables."""
        list_args = os.getenv("NFTJSON_LIST_ARGS", "").split()
        return cls(
            nft_program=os.getenv("NFTJSON_NFT_PROGRAM", NFT_EXECUTABLE),
            list_args=tuple(list_args) or DEFAULT_LIST_ARGS,
            log_level=os.getenv("NFTJSON_LOG_LEVEL", "WARNING"),
            log_file=os.getenv("NFTJSON_LOG_FILE") or None,
        )


# Global config instance
_config: NftConfig | None = None


def get_config() -> NftConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        load_env_files()
        _config = NftConfig.from_env()
    return _config


def set_config(config: NftConfig | None) -> None:
    """Set (or with ``None``, reset) the global configuration instance."""
    global _config
    _config = config
