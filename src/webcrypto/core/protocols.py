"""
Протокольные интерфейсы границы с Provider.

Provider выполняет реальные криптографические операции и хранит байты ключей.
Фасад обращается к нему только через ProviderProtocol. Асинхронные операции
принимают Completion — одноразовый канал, который Provider завершает ровно
один раз (resolve или reject), из любого потока.

Модуль использует typing.Protocol (structural subtyping без явного
наследования); классы помечены @runtime_checkable для isinstance() проверок.

Example:
    >>> from src.webcrypto.provider import SoftwareProvider
    >>> isinstance(SoftwareProvider(), ProviderProtocol)
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Sequence, runtime_checkable

from src.webcrypto.core.descriptors import (
    AesDerivedKeyAlgorithm,
    AesGcmParams,
    DeriveParams,
    EcdhKeyAlgorithm,
    KeyAlgorithm,
)


@dataclass(frozen=True)
class ProviderKey:
    """
    Ссылка на ключ, передаваемая в Provider.

    Attributes:
        ref: Непрозрачная ссылка, выданная Provider при import/generate/derive
        type: Роль представления ("secret", "private", "public"). Для пары
            ECDH одна ref используется двумя ролями.
    """

    ref: Any
    type: str


# ==============================================================================
# COMPLETION PROTOCOL
# ==============================================================================


@runtime_checkable
class CompletionProtocol(Protocol):
    """
    Одноразовый канал завершения асинхронного вызова Provider.

    Учитывается только первое завершение; повторные игнорируются.
    """

    def resolve(self, value: Any) -> None:
        """Завершить вызов успешно."""
        ...

    def reject(self, reason: Any) -> None:
        """Завершить вызов ошибкой; reason приводится к строке."""
        ...


# ==============================================================================
# PROVIDER PROTOCOL
# ==============================================================================


@runtime_checkable
class ProviderProtocol(Protocol):
    """
    Контракт Provider.

    Все асинхронные методы возвращают None и сообщают результат через
    completion. Синхронное исключение из метода фасад тоже превращает
    в ProviderError.

    Validation Rules (ответственность Provider):
        - usages ключа разрешают операцию
        - extractable=False запрещает экспорт секретного материала
        - tag_length входит в допустимый набор
    """

    def fill_random(self, byte_length: int) -> bytes:
        """Вернуть byte_length случайных байтов (может вернуть меньше)."""
        ...

    def digest(self, algorithm: str, data: bytes, completion: CompletionProtocol) -> None:
        """Посчитать хеш; resolve(bytes)."""
        ...

    def import_key(
        self,
        format: str,
        data: bytes,
        algorithm: KeyAlgorithm,
        extractable: bool,
        usages: Sequence[str],
        completion: CompletionProtocol,
    ) -> None:
        """Импортировать ключ; resolve(ref)."""
        ...

    def generate_key_pair(
        self,
        algorithm: EcdhKeyAlgorithm,
        extractable: bool,
        usages: Sequence[str],
        completion: CompletionProtocol,
    ) -> None:
        """Сгенерировать пару; resolve(ref) — одна ref для обеих ролей."""
        ...

    def derive_key(
        self,
        algorithm: DeriveParams,
        base_key: ProviderKey,
        derived_algorithm: AesDerivedKeyAlgorithm,
        extractable: bool,
        usages: Sequence[str],
        completion: CompletionProtocol,
    ) -> None:
        """Вывести новый ключ; resolve(ref)."""
        ...

    def export_key(self, format: str, key: ProviderKey, completion: CompletionProtocol) -> None:
        """Экспортировать ключ; resolve(bytes)."""
        ...

    def encrypt(
        self,
        params: AesGcmParams,
        key: ProviderKey,
        data: bytes,
        completion: CompletionProtocol,
    ) -> None:
        """AEAD шифрование; resolve(ciphertext || tag)."""
        ...

    def decrypt(
        self,
        params: AesGcmParams,
        key: ProviderKey,
        data: bytes,
        completion: CompletionProtocol,
    ) -> None:
        """AEAD расшифрование; reject при несовпадении тега."""
        ...

    def release_key(self, ref: Any) -> None:
        """Освободить ключ на стороне Provider."""
        ...


__all__ = [
    "ProviderKey",
    "CompletionProtocol",
    "ProviderProtocol",
]
