"""
Пакет WebCrypto Bridge
======================

WebCrypto-совместимый асинхронный фасад (Crypto / SubtleCrypto) поверх
внедряемого Provider с реализацией криптографии.

Этот пакет предоставляет:
    - Строгую синхронную валидацию аргументов операций SubtleCrypto
    - Непрозрачные дескрипторы ключей с generation-проверкой
    - Асинхронные операции: digest, importKey/exportKey, generateKey,
      deriveBits/deriveKey, encrypt/decrypt (AES-GCM)
    - Программный Provider на библиотеке cryptography

Пример базового использования:
    >>> import asyncio
    >>> from src.webcrypto import create_crypto
    >>>
    >>> crypto = create_crypto()
    >>> async def main() -> bytes:
    ...     return await crypto.subtle.digest("SHA-256", b"hello")
    >>> digest = asyncio.run(main())

Конфигурация через переменные окружения:
    >>> import os
    >>> os.environ["WEBCRYPTO_LOG_LEVEL"] = "DEBUG"
    >>> os.environ["WEBCRYPTO_LOG_FILE"] = "logs/webcrypto.log"
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from pathlib import Path

# =============================================================================
# МЕТАДАННЫЕ ВЕРСИИ
# =============================================================================

__version__ = "0.1.0"
__author__ = "WebCrypto Bridge Development Team"
__description__ = "WebCrypto-compatible async facade over a pluggable crypto provider"
__license__ = "MIT"
__python_requires__ = ">=3.11"

# Компоненты семантической версии
VERSION_MAJOR = 0
VERSION_MINOR = 1
VERSION_PATCH = 0

# Пространство имён логгеров пакета
LOGGER_NAMESPACE = "src"

# =============================================================================
# КОНФИГУРАЦИЯ ЛОГИРОВАНИЯ
# =============================================================================


def _setup_logging() -> None:
    """
    Инициализировать общепакетную конфигурацию логирования.

    Настраивает логгер пакета с:
    - Консольным обработчиком (stderr) для WARNING и выше
    - Ротирующим файловым обработчиком, если задана переменная
      WEBCRYPTO_LOG_FILE
    - Форматом с временной меткой, уровнем, модулем и сообщением

    Уровень логирования задаётся через WEBCRYPTO_LOG_LEVEL:
    DEBUG, INFO, WARNING, ERROR, CRITICAL (по умолчанию INFO).

    Функция идемпотентна: повторные вызовы не добавляют обработчиков.
    """
    log_level_str = os.environ.get("WEBCRYPTO_LOG_LEVEL", "INFO").upper()

    log_level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    log_level = log_level_map.get(log_level_str, logging.INFO)

    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    if package_logger.handlers:
        return

    package_logger.setLevel(log_level)

    formatter = logging.Formatter(
        fmt=("[%(asctime)s] %(levelname)-8s " "[%(name)s.%(funcName)s:%(lineno)d] %(message)s"),
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Консольный обработчик (stderr) - WARNING и выше
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    # Файловый обработчик (ротирующий) - только по запросу
    log_file = os.environ.get("WEBCRYPTO_LOG_FILE")
    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_path,
                maxBytes=10 * 1024 * 1024,  # 10 МБ
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)
        except OSError as e:
            package_logger.warning(
                "Не удалось инициализировать файловое логирование: %s. "
                "Используется только консоль.",
                e,
            )

    package_logger.propagate = False


def get_logger(module_name: str) -> logging.Logger:
    """
    Получить логгер в пространстве имён пакета.

    Аргументы:
        module_name: Имя модуля, обычно `__name__`.

    Возвращает:
        logging.Logger с именем 'src.<module_name>'.

    Пример:
        >>> logger = get_logger(__name__)
        >>> logger.debug("importKey: format=%s", "raw")
    """
    if module_name == LOGGER_NAMESPACE or module_name.startswith(LOGGER_NAMESPACE + "."):
        full_name = module_name
    elif module_name == "__main__":
        full_name = f"{LOGGER_NAMESPACE}.main"
    else:
        full_name = f"{LOGGER_NAMESPACE}.{module_name.lstrip('.')}"

    return logging.getLogger(full_name)


__all__ = [
    # Метаданные версии
    "__version__",
    "__author__",
    "__description__",
    "__license__",
    "__python_requires__",
    "VERSION_MAJOR",
    "VERSION_MINOR",
    "VERSION_PATCH",
    # Утилиты
    "LOGGER_NAMESPACE",
    "get_logger",
]

# =============================================================================
# ИНИЦИАЛИЗАЦИЯ ПАКЕТА
# =============================================================================

_setup_logging()

_logger = get_logger(__name__)
_logger.debug("WebCrypto Bridge v%s initialized", __version__)
