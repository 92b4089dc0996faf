# -*- coding: utf-8 -*-
"""
RU: Конфигурация программного Provider с профилями исполнения.
EN: Software provider configuration with execution profiles.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Final, Mapping, Optional


class ExecutionMode(str, Enum):
    """Where the software provider runs cryptographic work."""

    # Complete on the calling thread (tests, embedding)
    INLINE = "inline"

    # Run in a worker thread pool, complete on the event loop
    THREAD_POOL = "thread_pool"


class ProviderProfile(str, Enum):
    """Predefined provider profiles."""

    DEFAULT = "default"
    INLINE = "inline"


# WebCrypto quota for a single getRandomValues call
MAX_RANDOM_BYTES: Final[int] = 65536


@dataclass(frozen=True)
class ProviderConfig:
    """
    Software provider configuration.

    Attributes:
        execution_mode: INLINE or THREAD_POOL.
        max_workers: Worker threads for THREAD_POOL mode.
        max_random_bytes: Upper bound of bytes returned by fill_random.

    Examples:
        >>> ProviderConfig.from_profile(ProviderProfile.INLINE).execution_mode
        <ExecutionMode.INLINE: 'inline'>
    """

    execution_mode: ExecutionMode = ExecutionMode.THREAD_POOL
    max_workers: int = 4
    max_random_bytes: int = MAX_RANDOM_BYTES

    def __post_init__(self) -> None:
        """Validate parameters."""
        if not isinstance(self.execution_mode, ExecutionMode):
            raise ValueError(f"execution_mode must be ExecutionMode, got {self.execution_mode!r}")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if self.max_random_bytes < 1:
            raise ValueError("max_random_bytes must be >= 1")

    @staticmethod
    def from_profile(profile: ProviderProfile) -> "ProviderConfig":
        """Create configuration from predefined profile."""
        return _PROFILE_PARAMS[profile]

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "ProviderConfig":
        """
        Build configuration from environment variables.

        Variables:
            WEBCRYPTO_EXECUTION_MODE: "inline" or "thread_pool"
            WEBCRYPTO_MAX_WORKERS: worker count
            WEBCRYPTO_MAX_RANDOM_BYTES: fill_random cap

        Raises:
            ValueError: malformed value
        """
        env = os.environ if environ is None else environ
        base = _PROFILE_PARAMS[ProviderProfile.DEFAULT]
        return ProviderConfig(
            execution_mode=ExecutionMode(
                env.get("WEBCRYPTO_EXECUTION_MODE", base.execution_mode.value).lower()
            ),
            max_workers=int(env.get("WEBCRYPTO_MAX_WORKERS", base.max_workers)),
            max_random_bytes=int(env.get("WEBCRYPTO_MAX_RANDOM_BYTES", base.max_random_bytes)),
        )


_PROFILE_PARAMS: Final[dict[ProviderProfile, ProviderConfig]] = {
    ProviderProfile.DEFAULT: ProviderConfig(
        execution_mode=ExecutionMode.THREAD_POOL,
        max_workers=4,
    ),
    ProviderProfile.INLINE: ProviderConfig(
        execution_mode=ExecutionMode.INLINE,
        max_workers=1,
    ),
}


__all__ = [
    "ExecutionMode",
    "ProviderProfile",
    "ProviderConfig",
    "MAX_RANDOM_BYTES",
]
