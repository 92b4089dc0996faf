"""
Централизованные исключения WebCrypto фасада.

Иерархия типизированных исключений для операций SubtleCrypto. Обеспечивает
единообразную обработку ошибок и безопасность (NO раскрытия ключей, plaintext
или других секретных данных в сообщениях).

Example:
    >>> from src.webcrypto.core.exceptions import WebCryptoError
    >>> try:
    ...     key = await subtle.import_key("raw", data, "AES-GCM", False, [])
    ... except WebCryptoError as e:
    ...     logger.error("Import failed: %s", e)

Иерархия:
    WebCryptoError (базовое)
    ├── ArgumentCountError
    ├── ValidationError
    │   └── AlgorithmMismatchError
    ├── KeyHandleError
    └── ProviderError
        ├── ProviderResultError
        └── InsufficientRandomnessError

Propagation:
    ArgumentCountError и ValidationError поднимаются синхронно при вызове
    операции (кроме digest, где они приходят при await). ProviderError
    всегда приходит при await, после обращения к Provider.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__: list[str] = [
    "WebCryptoError",
    "ArgumentCountError",
    "ValidationError",
    "AlgorithmMismatchError",
    "KeyHandleError",
    "ProviderError",
    "ProviderResultError",
    "InsufficientRandomnessError",
]


# ==============================================================================
# BASE EXCEPTION
# ==============================================================================


class WebCryptoError(Exception):
    """
    Базовое исключение для всех ошибок фасада.

    Attributes:
        message: Человекочитаемое сообщение об ошибке
        algorithm: Имя алгоритма, вызвавшего ошибку (опционально)
        context: Дополнительный контекст для отладки (опционально)

    Security Note:
        Сообщения и контекст НЕ должны содержать байты ключей,
        plaintext, ciphertext или IV.
    """

    def __init__(
        self,
        message: str,
        *,
        algorithm: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.algorithm = algorithm
        self.context = context or {}

    def __str__(self) -> str:
        """
        Строковое представление исключения.

        Example:
            >>> str(ValidationError("Bad format", algorithm="AES-GCM"))
            'ValidationError: Bad format [algorithm=AES-GCM]'
        """
        parts = [self.__class__.__name__, ": ", self.message]

        if self.algorithm:
            parts.append(f" [algorithm={self.algorithm}]")

        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f" ({ctx_str})")

        return "".join(parts)

    def __repr__(self) -> str:
        """Представление для отладки."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"algorithm={self.algorithm!r}, "
            f"context={self.context!r})"
        )


# ==============================================================================
# ARGUMENT / VALIDATION ERRORS
# ==============================================================================


class ArgumentCountError(WebCryptoError):
    """
    Неверное количество аргументов операции с фиксированной арностью.

    Attributes:
        operation: Имя операции (например, "SubtleCrypto.importKey")
        expected: Ожидаемое количество аргументов
        received: Фактическое количество аргументов

    Example:
        >>> subtle.import_key("raw", data)
        ArgumentCountError: Expected 5 arguments, got 2 (operation=SubtleCrypto.importKey)
    """

    def __init__(
        self,
        operation: str,
        expected: int,
        received: int,
        *,
        message: Optional[str] = None,
    ) -> None:
        if message is None:
            message = f"Expected {expected} arguments, got {received}"
        super().__init__(message, context={"operation": operation})
        self.operation = operation
        self.expected = expected
        self.received = received


class ValidationError(WebCryptoError):
    """
    Структурное, типовое или enum-нарушение, найденное валидатором.

    Attributes:
        field: Имя проверяемого поля (например, "algorithm.iv"), если известно

    Example:
        >>> raise ValidationError('format must be "raw", "spki", got "jwk"', field="format")
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        algorithm: Optional[str] = None,
    ) -> None:
        context: Dict[str, Any] = {"field": field} if field else {}
        super().__init__(message, algorithm=algorithm, context=context)
        self.field = field


class AlgorithmMismatchError(ValidationError):
    """
    Неподдерживаемое имя алгоритма или комбинация алгоритм/операция.

    Example:
        >>> await subtle.derive_bits("AES-GCM", key, 256)
        AlgorithmMismatchError: AES-GCM not supported for this function
    """

    pass


# ==============================================================================
# KEY HANDLE ERRORS
# ==============================================================================


class KeyHandleError(WebCryptoError):
    """
    Обращение к освобождённому или чужому дескриптору ключа.

    Указывает на программную ошибку: дескриптор был освобождён
    (generation не совпадает) или никогда не был выдан этим менеджером.
    """

    pass


# ==============================================================================
# PROVIDER ERRORS
# ==============================================================================


class ProviderError(WebCryptoError):
    """
    Ошибка, сообщённая Provider во время асинхронного вызова.

    Оборачивает причину, переданную Provider, в сообщение. Типичные
    случаи: ошибка аутентификации при decrypt, отказ экспорта
    non-extractable ключа, запрещённый usage.

    Attributes:
        operation: Имя операции Provider (например, "subtleDecrypt")
    """

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        algorithm: Optional[str] = None,
    ) -> None:
        context: Dict[str, Any] = {"operation": operation} if operation else {}
        super().__init__(message, algorithm=algorithm, context=context)
        self.operation = operation


class ProviderResultError(ProviderError):
    """
    Provider вернул результат некорректного типа или пустой результат.

    Example:
        >>> await subtle.digest("SHA-256", b"data")
        ProviderResultError: Internal Type Error: result is not valid bytes
    """

    pass


class InsufficientRandomnessError(ProviderError):
    """
    Provider вернул меньше случайных байтов, чем запрошено.

    Поднимается синхронно из Crypto.get_random_values.
    """

    def __init__(self, requested: int, received: int) -> None:
        super().__init__(
            "Not enough random bytes available", operation="getRandomValues"
        )
        self.context.update({"requested": requested, "received": received})
        self.requested = requested
        self.received = received
