"""
govsync/config.py

Configuration constants and data classes for govsync.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging
import os
import re

logger = logging.getLogger("govsync.config")


# Persisted cache keys (shared with stores written by the web dashboard)
PENDING_PROPOSALS_KEY = "pendingProposals"
PENDING_VOTES_KEY = "pendingVotes"
PENDING_EXECUTION_KEY = "pendingExecution"

# Persisted-state encodings
BIGINT_PATTERN = re.compile(r"^-?\d+n$")
ISO_DATE_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?(Z|[+-]\d{2}:\d{2})$"
)
FLAG_TYPED_ARRAY = "FLAG_TYPED_ARRAY"

# Pagination
DEFAULT_PAGE_SIZE = 6
DEFAULT_SORT_BY = "createdAt"
DEFAULT_SORT_DIRECTION = "desc"

# Display
PROPOSAL_DATE_FORMAT = "%Y/%m/%d %I:%M %p"
DISPLAY_DECIMALS = 2

# Default storage location for the file-backed cache
DEFAULT_STORAGE_DIR = Path.home() / ".govsync" / "cache"

# Environment variables
ENV_STORAGE_DIR = "GOVSYNC_STORAGE_DIR"
ENV_PAGE_SIZE = "GOVSYNC_PAGE_SIZE"
ENV_PERSIST_CACHE = "GOVSYNC_PERSIST_CACHE"
ENV_LOG_LEVEL = "GOVSYNC_LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass
class GovsyncConfig:
    """
    Runtime configuration.

    Usage:
        config = GovsyncConfig.from_env()
        cache = PendingCache(FileBackend(config.storage_dir), persist=config.persist_cache)
    """

    # Where the file-backed pending cache lives
    storage_dir: Path = field(default_factory=lambda: DEFAULT_STORAGE_DIR)

    # Proposals per fetched page
    page_size: int = DEFAULT_PAGE_SIZE

    # When False, cache mutations are kept in memory only
    persist_cache: bool = True

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "GovsyncConfig":
        """
        Build a configuration from environment variables.

        Invalid values are logged and the default is kept.
        """
        env = os.environ if environ is None else environ
        config = cls()

        storage_dir = env.get(ENV_STORAGE_DIR)
        if storage_dir:
            config.storage_dir = Path(storage_dir).expanduser()

        page_size = env.get(ENV_PAGE_SIZE)
        if page_size:
            try:
                value = int(page_size)
                if value <= 0:
                    raise ValueError("page size must be positive")
                config.page_size = value
            except ValueError as e:
                logger.warning(f"Invalid {ENV_PAGE_SIZE}={page_size!r}: {e}")

        persist = env.get(ENV_PERSIST_CACHE)
        if persist:
            normalized = persist.strip().lower()
            if normalized in _TRUTHY:
                config.persist_cache = True
            elif normalized in _FALSY:
                config.persist_cache = False
            else:
                logger.warning(f"Invalid {ENV_PERSIST_CACHE}={persist!r}")

        log_level = env.get(ENV_LOG_LEVEL)
        if log_level:
            level = log_level.strip().upper()
            if isinstance(logging.getLevelName(level), int):
                config.log_level = level
            else:
                logger.warning(f"Invalid {ENV_LOG_LEVEL}={log_level!r}")

        return config

    def to_dict(self) -> dict:
        return {
            "storage_dir": str(self.storage_dir),
            "page_size": self.page_size,
            "persist_cache": self.persist_cache,
            "log_level": self.log_level,
        }
