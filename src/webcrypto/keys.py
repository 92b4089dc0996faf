# -*- coding: utf-8 -*-
"""
RU: Дескрипторы ключей (CryptoKey) и менеджер арены ключей Provider.
EN: Opaque key handles and the generation-checked arena that owns Provider-side keys.

Design:
- Каждый ключ Provider адресуется слотом арены KeyId(index, generation).
- Освобождение слота увеличивает generation, поэтому старый KeyId никогда
  не совпадёт с новым ключом в том же слоте.
- Несколько CryptoKey могут ссылаться на один слот с разными type
  (private/public представления пары ECDH).
- KeyHandleManager — единственный владелец арены.
- Принятые (adopt) дескрипторы освобождают слот через weakref.finalize,
  когда собран последний из них.

Thread-safety:
- Арена защищена RLock; операции фасада выполняются в одном event loop,
  но release_key может вызываться из любого места.
"""

from __future__ import annotations

import logging
import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Final, Iterator, List, Optional, Sequence, Tuple, Union

from src.webcrypto.core.descriptors import KEY_TYPES
from src.webcrypto.core.exceptions import KeyHandleError
from src.webcrypto.core.protocols import ProviderKey, ProviderProtocol

_LOGGER: Final = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyId:
    """Generation-checked адрес слота арены."""

    index: int
    generation: int


class CryptoKey:
    """
    Непрозрачная ссылка на ключ, хранящийся в Provider.

    Attributes:
        algorithm: Нормализованный дескриптор (bare строка или dict)
        extractable: Может ли секретный материал покидать Provider
        usages: Разрешённые операции (immutable tuple)
        type: "secret", "private" или "public"

    Example:
        >>> key = await subtle.import_key("raw", raw, "AES-GCM", False, ["encrypt"])
        >>> key.algorithm, key.type, key.usages
        ('AES-GCM', 'secret', ('encrypt',))
    """

    __slots__ = ("_key_id", "_algorithm", "_extractable", "_usages", "_type", "__weakref__")

    def __init__(
        self,
        key_id: KeyId,
        *,
        algorithm: Union[str, Dict[str, Any]],
        extractable: bool,
        usages: Sequence[str] = (),
        type: str = "secret",
    ) -> None:
        if type not in KEY_TYPES:
            raise ValueError(f"Unknown key type: {type!r}")
        self._key_id = key_id
        self._algorithm = algorithm if isinstance(algorithm, str) else dict(algorithm)
        self._extractable = bool(extractable)
        self._usages: Tuple[str, ...] = tuple(usages)
        self._type = type

    @property
    def algorithm(self) -> Union[str, Dict[str, Any]]:
        if isinstance(self._algorithm, str):
            return self._algorithm
        return dict(self._algorithm)

    @property
    def extractable(self) -> bool:
        return self._extractable

    @property
    def usages(self) -> Tuple[str, ...]:
        return self._usages

    @property
    def type(self) -> str:
        return self._type

    def __repr__(self) -> str:
        return (
            f"CryptoKey(type={self._type!r}, algorithm={self._algorithm!r}, "
            f"extractable={self._extractable!r}, usages={list(self._usages)!r})"
        )


@dataclass
class _Slot:
    generation: int = 0
    live: bool = False
    ref: Any = None
    views: int = 0


class KeyHandleManager:
    """
    Владелец арены слотов ключей Provider.

    Создаёт пустые слоты, привязывает к ним ссылки Provider, размножает
    представления (роли) и освобождает ключи. Освобождение идемпотентно.

    Example:
        >>> manager = KeyHandleManager(provider)
        >>> with manager.transient() as key_id:
        ...     manager.bind(key_id, ref)
        ...     # слот освобождается на любом пути выхода
    """

    def __init__(self, provider: ProviderProtocol) -> None:
        self._provider = provider
        self._slots: List[_Slot] = []
        self._free: List[int] = []
        self._lock = threading.RLock()

    @property
    def live_count(self) -> int:
        """Количество живых слотов."""
        with self._lock:
            return sum(1 for slot in self._slots if slot.live)

    def create(self) -> KeyId:
        """Выделить пустой слот (без материала)."""
        with self._lock:
            if self._free:
                index = self._free.pop()
                slot = self._slots[index]
            else:
                index = len(self._slots)
                slot = _Slot()
                self._slots.append(slot)
            slot.live = True
            slot.ref = None
            slot.views = 0
            _LOGGER.debug("Key slot %d allocated (generation %d)", index, slot.generation)
            return KeyId(index, slot.generation)

    def bind(self, key_id: KeyId, ref: Any) -> None:
        """Привязать ссылку Provider к слоту."""
        with self._lock:
            self._slot(key_id).ref = ref

    def create_view(self, existing: CryptoKey, role: str, **attributes: Any) -> CryptoKey:
        """
        Новый CryptoKey на том же слоте с другим type.

        Args:
            existing: Исходный дескриптор
            role: "private" или "public"
            attributes: Переопределения algorithm/extractable/usages

        Raises:
            KeyHandleError: Слот исходного дескриптора освобождён
        """
        with self._lock:
            self._slot(existing._key_id)
        return CryptoKey(
            existing._key_id,
            algorithm=attributes.get("algorithm", existing.algorithm),
            extractable=attributes.get("extractable", existing.extractable),
            usages=attributes.get("usages", existing.usages),
            type=role,
        )

    def provider_key(self, key: CryptoKey) -> ProviderKey:
        """
        Разрешить CryptoKey в ссылку для Provider.

        Raises:
            KeyHandleError: Дескриптор устарел или материал не привязан
        """
        with self._lock:
            slot = self._slot(key._key_id)
            if slot.ref is None:
                raise KeyHandleError(
                    "Key handle has no provider material",
                    context={"index": key._key_id.index},
                )
            return ProviderKey(ref=slot.ref, type=key.type)

    def adopt(self, key: CryptoKey) -> CryptoKey:
        """
        Привязать время жизни слота к дескриптору.

        Слот освобождается, когда собран последний принятый дескриптор
        (представления одной пары делят слот и счётчик).

        Raises:
            KeyHandleError: Слот дескриптора уже освобождён
        """
        with self._lock:
            self._slot(key._key_id).views += 1
        finalizer = weakref.finalize(key, self._release_view, key._key_id)
        finalizer.atexit = False
        return key

    def _release_view(self, key_id: KeyId) -> None:
        with self._lock:
            if not 0 <= key_id.index < len(self._slots):
                return
            slot = self._slots[key_id.index]
            if not slot.live or slot.generation != key_id.generation:
                return
            slot.views -= 1
            if slot.views > 0:
                return
        self.dispose(key_id)

    def dispose(self, key_id: KeyId) -> None:
        """Освободить слот и ключ Provider. Повторный вызов ничего не делает."""
        with self._lock:
            if key_id.index >= len(self._slots):
                return
            slot = self._slots[key_id.index]
            if not slot.live or slot.generation != key_id.generation:
                return
            ref = slot.ref
            slot.live = False
            slot.ref = None
            slot.views = 0
            slot.generation += 1
            self._free.append(key_id.index)
        if ref is not None:
            self._provider.release_key(ref)
        _LOGGER.debug("Key slot %d disposed", key_id.index)

    @contextmanager
    def transient(self) -> Iterator[KeyId]:
        """Scoped слот: освобождается на любом пути выхода, включая ошибки Provider."""
        key_id = self.create()
        try:
            yield key_id
        finally:
            self.dispose(key_id)

    def _slot(self, key_id: KeyId) -> _Slot:
        slot: Optional[_Slot] = None
        if 0 <= key_id.index < len(self._slots):
            slot = self._slots[key_id.index]
        if slot is None or not slot.live or slot.generation != key_id.generation:
            raise KeyHandleError(
                "Key handle is stale or was disposed",
                context={"index": key_id.index, "generation": key_id.generation},
            )
        return slot


__all__ = [
    "KeyId",
    "CryptoKey",
    "KeyHandleManager",
]
