#!/usr/bin/env python3
"""Configuration management for the Safe watcher.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables with sensible defaults
where appropriate.
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from .models import PrefixedAddress
from .safe.api_wrapper import SafeAPIMode
from .utils.checksum import is_hex_address

# Get logger for this module
logger = logging.getLogger(__name__)


def _parse_pairs(raw: str, variable: str) -> list[tuple[str, str]]:
    """Split ``key=value,key=value`` into pairs, rejecting empty values."""
    pairs: list[tuple[str, str]] = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        key, sep, value = entry.partition("=")
        if not sep or not value.strip():
            raise ValueError(f"Invalid {variable} entry '{entry}', expected ADDRESS=Alias")
        pairs.append((key.strip(), value.strip()))
    return pairs


@dataclass(frozen=True, slots=True)
class SafeConfig:
    """A watched safe.

    Attributes:
        address: Prefixed safe address, e.g. ``eth:0x...``
        alias: Human-readable name used in notifications
    """

    address: str
    alias: str

    def __post_init__(self) -> None:
        """Validate safe configuration."""
        PrefixedAddress.parse(self.address)
        if not self.alias:
            raise ValueError(f"Alias is required for safe {self.address}")


@dataclass(frozen=True, slots=True)
class MonitoringConfig:
    """Configuration for polling and upstream requests."""
    poll_interval: int = 20  # seconds between polls
    api_mode: SafeAPIMode = SafeAPIMode.FALLBACK
    request_timeout: int = 30  # HTTP request timeout in seconds
    retry_count: int = 3  # extra attempts per request
    startup_stagger: float = 1.0  # seconds between watcher starts

    def __post_init__(self) -> None:
        """Validate monitoring configuration."""
        if self.poll_interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {self.poll_interval}")
        if self.poll_interval > 3600:
            raise ValueError(f"Poll interval too long (max 3600s), got {self.poll_interval}")

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")

        if self.retry_count < 0:
            raise ValueError(f"Retry count must be non-negative, got {self.retry_count}")
        if self.retry_count > 10:
            raise ValueError(f"Retry count too high (max 10), got {self.retry_count}")

        if self.startup_stagger < 0:
            raise ValueError(f"Startup stagger must be non-negative, got {self.startup_stagger}")

        # Accept plain strings from callers
        object.__setattr__(self, "api_mode", SafeAPIMode(self.api_mode))


@dataclass(frozen=True, slots=True)
class WatcherConfig:
    """Main configuration for the Safe watcher service.

    Attributes:
        safes: Safes to watch
        signers: Owner address to alias mapping
        monitoring: Polling and request settings
        safe_url: Safe web app URL used for links in notifications
    """

    safes: tuple[SafeConfig, ...]
    signers: dict[str, str] = field(default_factory=dict)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    safe_url: str = "https://app.safe.global"

    def __post_init__(self) -> None:
        """Validate watcher configuration."""
        if not self.safes:
            raise ValueError("At least one safe is required (SAFE_ADDRESSES)")

        addresses = [safe.address for safe in self.safes]
        if len(set(addresses)) != len(addresses):
            raise ValueError("Duplicate safe address in SAFE_ADDRESSES")

        for address, alias in self.signers.items():
            if not is_hex_address(address):
                raise ValueError(f"Invalid signer address: {address}")
            if not alias:
                raise ValueError(f"Alias is required for signer {address}")

        parsed = urlparse(self.safe_url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(
                f"Invalid Safe URL scheme: {parsed.scheme}. Expected http or https"
            )

    @classmethod
    def from_env(cls, api_mode: str | None = None) -> "WatcherConfig":
        """Load configuration from environment variables.

        Args:
            api_mode: Overrides SAFE_API when given

        Returns:
            WatcherConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        raw_safes = os.environ.get("SAFE_ADDRESSES", "")
        if not raw_safes.strip():
            raise ValueError(
                "SAFE_ADDRESSES environment variable is required. "
                "Example: eth:0x1234...=Treasury,rsk:0xabcd...=Ops"
            )
        safes = tuple(
            SafeConfig(address=address, alias=alias)
            for address, alias in _parse_pairs(raw_safes, "SAFE_ADDRESSES")
        )

        signers = dict(_parse_pairs(os.environ.get("SIGNERS", ""), "SIGNERS"))

        monitoring_config = MonitoringConfig(
            poll_interval=int(os.environ.get("POLL_INTERVAL", "20")),
            api_mode=SafeAPIMode(api_mode or os.environ.get("SAFE_API", "fallback")),
            request_timeout=int(os.environ.get("REQUEST_TIMEOUT", "30")),
            retry_count=int(os.environ.get("RETRY_COUNT", "3")),
            startup_stagger=float(os.environ.get("STARTUP_STAGGER", "1")),
        )

        return cls(
            safes=safes,
            signers=signers,
            monitoring=monitoring_config,
            safe_url=os.environ.get("SAFE_URL", "https://app.safe.global"),
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Safe Watcher Configuration")
        logger.info("=" * 60)

        logger.info("Safes:")
        for safe in self.safes:
            logger.info(f"  {safe.alias}: {safe.address}")

        logger.info(f"Signers: {len(self.signers)} known")

        logger.info("Monitoring Settings:")
        logger.info(f"  Poll Interval: {self.monitoring.poll_interval} seconds")
        logger.info(f"  API Mode: {self.monitoring.api_mode.value}")
        logger.info(f"  Request Timeout: {self.monitoring.request_timeout} seconds")
        logger.info(f"  Retry Count: {self.monitoring.retry_count}")
        logger.info(f"  Startup Stagger: {self.monitoring.startup_stagger} seconds")
        logger.info(f"Safe URL: {self.safe_url}")

        logger.info("=" * 60)
