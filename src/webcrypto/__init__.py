# -*- coding: utf-8 -*-
"""
RU: WebCrypto фасад: Crypto, SubtleCrypto, CryptoKey и программный Provider.
EN: WebCrypto facade public API.

Example:
    >>> crypto = create_crypto()
    >>> key = await crypto.subtle.import_key("raw", raw, "AES-GCM", False, ["encrypt"])
"""

from __future__ import annotations

import logging
from typing import Final, Optional

from src.webcrypto.completion import Completion
from src.webcrypto.config import (
    MAX_RANDOM_BYTES,
    ExecutionMode,
    ProviderConfig,
    ProviderProfile,
)
from src.webcrypto.core.exceptions import (
    AlgorithmMismatchError,
    ArgumentCountError,
    InsufficientRandomnessError,
    KeyHandleError,
    ProviderError,
    ProviderResultError,
    ValidationError,
    WebCryptoError,
)
from src.webcrypto.core.protocols import CompletionProtocol, ProviderKey, ProviderProtocol
from src.webcrypto.crypto import Crypto
from src.webcrypto.keys import CryptoKey, KeyHandleManager, KeyId
from src.webcrypto.provider import SoftwareProvider
from src.webcrypto.subtle import SubtleCrypto

_LOGGER: Final = logging.getLogger(__name__)


def create_crypto(config: Optional[ProviderConfig] = None) -> Crypto:
    """
    Crypto поверх SoftwareProvider.

    Args:
        config: Конфигурация Provider; по умолчанию из переменных окружения
    """
    provider = SoftwareProvider(config or ProviderConfig.from_env())
    _LOGGER.debug("Crypto created (%s)", provider.config.execution_mode.value)
    return Crypto(provider)


__all__ = [
    "create_crypto",
    "Crypto",
    "SubtleCrypto",
    "CryptoKey",
    "KeyId",
    "KeyHandleManager",
    "Completion",
    "SoftwareProvider",
    "ProviderConfig",
    "ProviderProfile",
    "ExecutionMode",
    "MAX_RANDOM_BYTES",
    "CompletionProtocol",
    "ProviderKey",
    "ProviderProtocol",
    "WebCryptoError",
    "ArgumentCountError",
    "ValidationError",
    "AlgorithmMismatchError",
    "KeyHandleError",
    "ProviderError",
    "ProviderResultError",
    "InsufficientRandomnessError",
]
