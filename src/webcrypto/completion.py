# -*- coding: utf-8 -*-
"""
RU: Одноразовый канал завершения вызовов Provider, привязанный к asyncio.Future.
EN: One-shot completion channel adapting Provider callbacks to asyncio futures.

The Provider may settle a completion from any thread; the result is
marshalled to the owning loop with call_soon_threadsafe. Only the first
settlement counts. Cancellation of the awaiting task does not stop the
Provider request; its late settlement is discarded. A discarded result is
handed to on_discard so the Provider can free what it allocated.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
from typing import Any, Callable, Final, Optional

from src.webcrypto.core.exceptions import ProviderError

_LOGGER: Final = logging.getLogger(__name__)


class Completion:
    """
    Одноразовое завершение одного вызова Provider.

    Attributes:
        operation: Имя операции Provider для сообщений об ошибках
        settled: True после первого resolve/reject

    Example:
        >>> loop = asyncio.get_running_loop()
        >>> completion = Completion(loop, "subtleDigest")
        >>> provider.digest("SHA-256", data, completion)
        >>> digest = await completion.future
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        operation: str,
        *,
        algorithm: Optional[str] = None,
        on_discard: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self.operation = operation
        self._algorithm = algorithm
        self._on_discard = on_discard
        self._loop = loop
        self._future: asyncio.Future[Any] = loop.create_future()
        self._settled = False
        self._lock = threading.Lock()

    @property
    def future(self) -> "asyncio.Future[Any]":
        return self._future

    @property
    def settled(self) -> bool:
        return self._settled

    def resolve(self, value: Any) -> None:
        discard = None
        if self._on_discard is not None:
            discard = functools.partial(self._on_discard, value)
        self._settle(lambda: self._future.set_result(value), discard)

    def reject(self, reason: Any) -> None:
        error = ProviderError(
            str(reason) or reason.__class__.__name__,
            operation=self.operation,
            algorithm=self._algorithm,
        )
        if isinstance(reason, BaseException):
            error.__cause__ = reason
        self._settle(lambda: self._future.set_exception(error))

    def _settle(
        self, apply: Callable[[], None], discard: Optional[Callable[[], None]] = None
    ) -> None:
        with self._lock:
            if self._settled:
                _LOGGER.warning("%s completed more than once; ignoring", self.operation)
                return
            self._settled = True
        self._loop.call_soon_threadsafe(self._apply, apply, discard)

    def _apply(
        self, apply: Callable[[], None], discard: Optional[Callable[[], None]]
    ) -> None:
        if self._future.done():
            _LOGGER.debug("%s completed after its awaiter went away", self.operation)
            if discard is not None:
                discard()
            return
        apply()


__all__ = ["Completion"]
