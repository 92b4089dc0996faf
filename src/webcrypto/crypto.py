# -*- coding: utf-8 -*-
"""
RU: Верхнеуровневый объект Crypto: subtle + синхронный get_random_values.
EN: Top-level Crypto object owning SubtleCrypto and random value filling.
"""

from __future__ import annotations

import logging
from typing import Any, Final, Optional

from src.webcrypto.core.exceptions import (
    InsufficientRandomnessError,
    ProviderResultError,
)
from src.webcrypto.core.protocols import ProviderProtocol
from src.webcrypto.subtle import SubtleCrypto
from src.webcrypto.validation import require_arity, require_writable_view

_LOGGER: Final = logging.getLogger(__name__)


class Crypto:
    """
    WebCrypto Crypto поверх внедрённого Provider.

    Attributes:
        subtle: SubtleCrypto, использующий тот же Provider

    Example:
        >>> with create_crypto() as crypto:
        ...     buf = crypto.get_random_values(bytearray(16))
    """

    def __init__(self, provider: ProviderProtocol) -> None:
        self._provider = provider
        self.subtle = SubtleCrypto(provider)

    def get_random_values(self, *args: Any) -> Any:
        """
        Fill a writable integer buffer with random bytes in place.

        Returns:
            The same object, mutated

        Raises:
            ArgumentCountError: no argument given
            ValidationError: float, read-only or non-buffer argument
            InsufficientRandomnessError: Provider returned fewer bytes
        """
        require_arity(len(args), 1, "Crypto.getRandomValues", minimum=True)
        target = args[0]
        with require_writable_view(target) as view:
            byte_length = view.nbytes
            values = self._provider.fill_random(byte_length)
            if not isinstance(values, (bytes, bytearray)):
                raise ProviderResultError(
                    "Internal Type Error: result is not valid bytes",
                    operation="getRandomValues",
                )
            if len(values) != byte_length:
                _LOGGER.warning(
                    "getRandomValues: requested %d bytes, provider returned %d",
                    byte_length,
                    len(values),
                )
                raise InsufficientRandomnessError(byte_length, len(values))
            view[:] = values
        return target

    getRandomValues = get_random_values

    def close(self) -> None:
        """Закрыть Provider (пул потоков), если он это поддерживает."""
        close = getattr(self._provider, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "Crypto":
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.close()


__all__ = ["Crypto"]
