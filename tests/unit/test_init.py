"""
Модульные тесты для src/__init__.py и src/webcrypto/__init__.py
Тестирует метаданные пакета, логирование и публичный API.
"""

import asyncio
import logging
import re
from importlib import reload
from pathlib import Path
from unittest import mock

import pytest

import src as package
import src.webcrypto as webcrypto
from src.webcrypto.config import ExecutionMode, ProviderConfig, ProviderProfile


@pytest.fixture
def clean_package_logger():
    """Временно снять обработчики логгера пакета и восстановить их после теста."""
    package_logger = logging.getLogger(package.LOGGER_NAMESPACE)
    saved_handlers = package_logger.handlers[:]
    saved_level = package_logger.level
    for handler in saved_handlers:
        package_logger.removeHandler(handler)
    yield package_logger
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()
    for handler in saved_handlers:
        package_logger.addHandler(handler)
    package_logger.setLevel(saved_level)


class TestVersionMetadata:
    """Тестирование метаданных версии и констант."""

    def test_version_format(self) -> None:
        """Проверить, что __version__ следует семантическому версионированию."""
        assert re.match(r"^\d+\.\d+\.\d+$", package.__version__)

    def test_version_components(self) -> None:
        """Проверить, что компоненты версии соответствуют __version__."""
        expected_version = (
            f"{package.VERSION_MAJOR}." f"{package.VERSION_MINOR}." f"{package.VERSION_PATCH}"
        )
        assert package.__version__ == expected_version

    def test_metadata_attributes(self) -> None:
        """Проверить, что атрибуты метаданных являются непустыми строками."""
        for name in ("__author__", "__description__", "__license__", "__python_requires__"):
            value = getattr(package, name)
            assert isinstance(value, str) and value, f"{name} должен быть непустой строкой"


class TestPublicAPI:
    """Тестирование экспортов публичного API."""

    @pytest.mark.parametrize("module", [package, webcrypto])
    def test_all_exports_exist(self, module) -> None:
        """Проверить, что все имена в __all__ существуют в модуле."""
        for name in module.__all__:
            assert hasattr(module, name), f"Имя '{name}' из __all__ не существует"

    @pytest.mark.parametrize("module", [package, webcrypto])
    def test_no_duplicate_exports(self, module) -> None:
        """Проверить, что __all__ не содержит дубликатов."""
        assert len(module.__all__) == len(set(module.__all__))

    def test_facade_exported(self) -> None:
        """Проверить экспорт основных классов фасада."""
        for name in ("Crypto", "SubtleCrypto", "CryptoKey", "SoftwareProvider", "create_crypto"):
            assert name in webcrypto.__all__


class TestCreateCrypto:
    """Тестирование фабрики create_crypto."""

    def test_explicit_config(self) -> None:
        crypto = webcrypto.create_crypto(ProviderConfig.from_profile(ProviderProfile.INLINE))

        async def check() -> None:
            digest = await crypto.subtle.digest("SHA-1", b"abc")
            assert digest.hex() == "a9993e364706816aba3e25717850c26c9cd0d89d"

        asyncio.run(check())

    def test_config_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEBCRYPTO_EXECUTION_MODE", "inline")

        crypto = webcrypto.create_crypto()

        assert crypto.subtle._provider.config.execution_mode is ExecutionMode.INLINE

    def test_thread_pool_round_trip(self) -> None:
        provider = webcrypto.SoftwareProvider(ProviderConfig(max_workers=2))
        crypto = webcrypto.Crypto(provider)

        async def check() -> None:
            key = await crypto.subtle.import_key(
                "raw", bytes(16), "AES-GCM", False, ["encrypt", "decrypt"]
            )
            params = {"name": "AES-GCM", "iv": bytes(12)}
            ciphertext = await crypto.subtle.encrypt(params, key, b"payload")
            assert await crypto.subtle.decrypt(params, key, ciphertext) == b"payload"

        try:
            asyncio.run(check())
        finally:
            provider.close()

    def test_context_manager_closes_provider(self) -> None:
        with webcrypto.create_crypto(ProviderConfig(max_workers=1)) as crypto:
            provider = crypto.subtle._provider

        assert provider._executor is None


class TestLogging:
    """Тестирование конфигурации логирования."""

    def test_get_logger_returns_logger(self) -> None:
        assert isinstance(package.get_logger("test_module"), logging.Logger)

    def test_get_logger_name_format(self) -> None:
        assert package.get_logger("test_module").name == "src.test_module"

    def test_get_logger_with_qualified_name(self) -> None:
        assert package.get_logger("src.webcrypto.subtle").name == "src.webcrypto.subtle"

    def test_get_logger_with_main(self) -> None:
        assert package.get_logger("__main__").name == "src.main"

    def test_module_loggers_share_namespace(self) -> None:
        """Логгеры модулей (logging.getLogger(__name__)) наследуют логгер пакета."""
        from src.webcrypto import subtle

        assert subtle._LOGGER.name.startswith(package.LOGGER_NAMESPACE + ".")

    def test_logger_is_configured(self) -> None:
        package_logger = logging.getLogger(package.LOGGER_NAMESPACE)

        assert len(package_logger.handlers) >= 1
        assert package_logger.propagate is False

    def test_setup_is_idempotent(self) -> None:
        package_logger = logging.getLogger(package.LOGGER_NAMESPACE)
        before = len(package_logger.handlers)

        package._setup_logging()

        assert len(package_logger.handlers) == before

    def test_log_level_from_environment(self, clean_package_logger: logging.Logger) -> None:
        with mock.patch.dict("os.environ", {"WEBCRYPTO_LOG_LEVEL": "DEBUG"}):
            reload(package)

        assert clean_package_logger.level == logging.DEBUG

    def test_unknown_log_level_defaults_to_info(
        self, clean_package_logger: logging.Logger
    ) -> None:
        with mock.patch.dict("os.environ", {"WEBCRYPTO_LOG_LEVEL": "VERBOSE"}):
            package._setup_logging()

        assert clean_package_logger.level == logging.INFO

    def test_file_handler_from_environment(
        self, clean_package_logger: logging.Logger, tmp_path: Path
    ) -> None:
        log_file = tmp_path / "logs" / "webcrypto.log"

        with mock.patch.dict("os.environ", {"WEBCRYPTO_LOG_FILE": str(log_file)}):
            package._setup_logging()

        file_handlers = [
            h for h in clean_package_logger.handlers if isinstance(h, logging.FileHandler)
        ]
        assert len(file_handlers) == 1
        assert log_file.parent.is_dir()

    def test_no_file_handler_by_default(self, clean_package_logger: logging.Logger) -> None:
        with mock.patch.dict("os.environ", {}, clear=True):
            package._setup_logging()

        assert not any(
            isinstance(h, logging.FileHandler) for h in clean_package_logger.handlers
        )
