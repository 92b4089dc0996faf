"""
Unit-тесты для SoftwareProvider (provider.py).

Provider проверяется напрямую, без фасада: INLINE режим завершает
вызовы синхронно, поэтому результат читается из RecordingCompletion.
"""

from __future__ import annotations

import hashlib
import threading
from typing import Any, Optional

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from src.webcrypto.config import ExecutionMode, ProviderConfig, ProviderProfile
from src.webcrypto.core.descriptors import (
    AesDerivedKeyAlgorithm,
    AesGcmKeyAlgorithm,
    AesGcmParams,
    EcdhDeriveParams,
    EcdhKeyAlgorithm,
    HkdfDeriveParams,
    HkdfKeyAlgorithm,
)
from src.webcrypto.core.protocols import ProviderKey, ProviderProtocol
from src.webcrypto.provider import SoftwareProvider


class RecordingCompletion:
    """Completion, запоминающий первый результат."""

    def __init__(self) -> None:
        self.value: Any = None
        self.reason: Optional[str] = None
        self.calls = 0
        self.done = threading.Event()

    def resolve(self, value: Any) -> None:
        self.calls += 1
        self.value = value
        self.done.set()

    def reject(self, reason: Any) -> None:
        self.calls += 1
        self.reason = str(reason)
        self.done.set()


def call(method: Any, *args: Any) -> RecordingCompletion:
    completion = RecordingCompletion()
    method(*args, completion)
    assert completion.done.wait(timeout=5)
    assert completion.calls == 1
    return completion


def ok(method: Any, *args: Any) -> Any:
    completion = call(method, *args)
    assert completion.reason is None, completion.reason
    return completion.value


def refused(method: Any, *args: Any) -> str:
    completion = call(method, *args)
    assert completion.reason is not None
    return completion.reason


@pytest.fixture
def provider() -> SoftwareProvider:
    return SoftwareProvider(ProviderConfig.from_profile(ProviderProfile.INLINE))


def import_aes(provider: SoftwareProvider, raw: bytes, usages: Any = ("encrypt", "decrypt")) -> Any:
    return ok(provider.import_key, "raw", raw, AesGcmKeyAlgorithm(), True, usages)


class TestProtocol:
    """Тест соответствия протоколу."""

    def test_is_provider(self, provider: SoftwareProvider) -> None:
        assert isinstance(provider, ProviderProtocol)


class TestFillRandom:
    """Тесты fill_random."""

    def test_length(self, provider: SoftwareProvider) -> None:
        assert len(provider.fill_random(32)) == 32

    def test_zero(self, provider: SoftwareProvider) -> None:
        assert provider.fill_random(0) == b""

    def test_capped(self) -> None:
        provider = SoftwareProvider(
            ProviderConfig(execution_mode=ExecutionMode.INLINE, max_random_bytes=16)
        )

        assert len(provider.fill_random(64)) == 16


class TestDigest:
    """Тесты digest."""

    @pytest.mark.parametrize(
        "name, reference",
        [
            ("SHA-1", hashlib.sha1),
            ("SHA-256", hashlib.sha256),
            ("SHA-384", hashlib.sha384),
            ("SHA-512", hashlib.sha512),
        ],
    )
    def test_matches_hashlib(self, provider: SoftwareProvider, name: str, reference: Any) -> None:
        assert ok(provider.digest, name, b"abc") == reference(b"abc").digest()

    def test_unknown_hash(self, provider: SoftwareProvider) -> None:
        assert "Unsupported hash" in refused(provider.digest, "MD5", b"abc")


class TestImportKey:
    """Тесты import_key."""

    @pytest.mark.parametrize("size", [16, 24, 32])
    def test_aes_sizes(self, provider: SoftwareProvider, size: int) -> None:
        import_aes(provider, bytes(size))

        assert provider.live_key_count == 1

    def test_aes_bad_size(self, provider: SoftwareProvider) -> None:
        reason = refused(
            provider.import_key, "raw", bytes(10), AesGcmKeyAlgorithm(), True, ()
        )

        assert reason == "Invalid AES key length: 80 bits"

    def test_ecdh_spki_and_raw(self, provider: SoftwareProvider) -> None:
        public_key = ec.generate_private_key(ec.SECP256R1()).public_key()
        spki = public_key.public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
        raw = public_key.public_bytes(
            serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
        )

        ok(provider.import_key, "spki", spki, EcdhKeyAlgorithm(), True, ())
        ok(provider.import_key, "raw", raw, EcdhKeyAlgorithm(), True, ())

        assert provider.live_key_count == 2

    def test_ecdh_pkcs8(self, provider: SoftwareProvider) -> None:
        pkcs8 = ec.generate_private_key(ec.SECP256R1()).private_bytes(
            serialization.Encoding.DER,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )

        ok(provider.import_key, "pkcs8", pkcs8, EcdhKeyAlgorithm(), False, ("deriveBits",))

    def test_ecdh_wrong_curve(self, provider: SoftwareProvider) -> None:
        spki = (
            ec.generate_private_key(ec.SECP384R1())
            .public_key()
            .public_bytes(
                serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
            )
        )

        assert "Unsupported curve" in refused(
            provider.import_key, "spki", spki, EcdhKeyAlgorithm(), True, ()
        )

    def test_garbage_spki(self, provider: SoftwareProvider) -> None:
        reason = refused(provider.import_key, "spki", b"\x00\x01", EcdhKeyAlgorithm(), True, ())

        assert reason.startswith("Operation failed")
        assert provider.live_key_count == 0

    def test_unsupported_combination(self, provider: SoftwareProvider) -> None:
        reason = refused(provider.import_key, "spki", bytes(16), AesGcmKeyAlgorithm(), True, ())

        assert reason == "Unsupported key format spki for algorithm AES-GCM"


class TestGenerateAndExport:
    """Тесты generate_key_pair и export_key."""

    def test_public_export_formats(self, provider: SoftwareProvider) -> None:
        ref = ok(provider.generate_key_pair, EcdhKeyAlgorithm(), False, ("deriveBits",))
        public = ProviderKey(ref=ref, type="public")

        raw = ok(provider.export_key, "raw", public)
        spki = ok(provider.export_key, "spki", public)

        assert len(raw) == 65
        assert raw[0] == 0x04
        loaded = serialization.load_der_public_key(spki)
        assert loaded.public_bytes(
            serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
        ) == raw

    @pytest.mark.parametrize("format", ["raw", "spki"])
    def test_non_extractable_imported_public(self, provider: SoftwareProvider, format: str) -> None:
        """Тест: импортированный public ключ с extractable=False не экспортируется."""
        spki = (
            ec.generate_private_key(ec.SECP256R1())
            .public_key()
            .public_bytes(
                serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
            )
        )
        ref = ok(provider.import_key, "spki", spki, EcdhKeyAlgorithm(), False, ())

        assert refused(provider.export_key, format, ProviderKey(ref, "public")) == (
            "Key is not extractable"
        )

    def test_private_export_refused(self, provider: SoftwareProvider) -> None:
        ref = ok(provider.generate_key_pair, EcdhKeyAlgorithm(), True, ())

        reason = refused(provider.export_key, "raw", ProviderKey(ref=ref, type="private"))

        assert "Unsupported export format" in reason

    def test_non_extractable_secret(self, provider: SoftwareProvider) -> None:
        ref = ok(provider.import_key, "raw", bytes(16), AesGcmKeyAlgorithm(), False, ())

        assert refused(provider.export_key, "raw", ProviderKey(ref, "secret")) == (
            "Key is not extractable"
        )

    def test_secret_spki_refused(self, provider: SoftwareProvider) -> None:
        ref = import_aes(provider, bytes(16))

        assert "Unsupported export format spki" in refused(
            provider.export_key, "spki", ProviderKey(ref, "secret")
        )

    def test_unknown_reference(self, provider: SoftwareProvider) -> None:
        assert refused(provider.export_key, "raw", ProviderKey(999, "secret")) == (
            "Unknown key reference"
        )

    def test_release_key(self, provider: SoftwareProvider) -> None:
        ref = import_aes(provider, bytes(16))
        provider.release_key(ref)
        provider.release_key(ref)

        assert provider.live_key_count == 0


class TestDeriveKey:
    """Тесты derive_key (ECDH и HKDF)."""

    def test_ecdh_agreement(self, provider: SoftwareProvider) -> None:
        alice = ok(provider.generate_key_pair, EcdhKeyAlgorithm(), False, ("deriveBits",))
        bob = ok(provider.generate_key_pair, EcdhKeyAlgorithm(), False, ("deriveBits",))
        target = AesDerivedKeyAlgorithm(length=256)

        ab = ok(
            provider.derive_key,
            EcdhDeriveParams(public=ProviderKey(bob, "public")),
            ProviderKey(alice, "private"),
            target,
            True,
            (),
        )
        ba = ok(
            provider.derive_key,
            EcdhDeriveParams(public=ProviderKey(alice, "public")),
            ProviderKey(bob, "private"),
            target,
            True,
            (),
        )

        secret_ab = ok(provider.export_key, "raw", ProviderKey(ab, "secret"))
        secret_ba = ok(provider.export_key, "raw", ProviderKey(ba, "secret"))
        assert secret_ab == secret_ba
        assert len(secret_ab) == 32

    def test_ecdh_length_exceeds_secret(self, provider: SoftwareProvider) -> None:
        pair = ok(provider.generate_key_pair, EcdhKeyAlgorithm(), False, ("deriveBits",))

        reason = refused(
            provider.derive_key,
            EcdhDeriveParams(public=ProviderKey(pair, "public")),
            ProviderKey(pair, "private"),
            AesDerivedKeyAlgorithm(length=512),
            True,
            (),
        )

        assert "exceeds ECDH secret" in reason

    def test_ecdh_public_base_refused(self, provider: SoftwareProvider) -> None:
        pair = ok(provider.generate_key_pair, EcdhKeyAlgorithm(), False, ("deriveBits",))

        reason = refused(
            provider.derive_key,
            EcdhDeriveParams(public=ProviderKey(pair, "public")),
            ProviderKey(pair, "public"),
            AesDerivedKeyAlgorithm(length=128),
            True,
            (),
        )

        assert reason == "ECDH base key must be a private key"

    def test_hkdf_matches_reference(self, provider: SoftwareProvider) -> None:
        ikm = b"\x0b" * 22
        base = ok(provider.import_key, "raw", ikm, HkdfKeyAlgorithm(), False, ("deriveBits",))
        params = HkdfDeriveParams(hash="SHA-256", salt=b"salt", info=b"info")

        ref = ok(
            provider.derive_key,
            params,
            ProviderKey(base, "secret"),
            AesDerivedKeyAlgorithm(length=256),
            True,
            (),
        )

        expected = HKDF(
            algorithm=hashes.SHA256(), length=32, salt=b"salt", info=b"info"
        ).derive(ikm)
        assert ok(provider.export_key, "raw", ProviderKey(ref, "secret")) == expected

    def test_missing_derive_usage(self, provider: SoftwareProvider) -> None:
        base = ok(provider.import_key, "raw", bytes(16), HkdfKeyAlgorithm(), False, ("encrypt",))

        reason = refused(
            provider.derive_key,
            HkdfDeriveParams(),
            ProviderKey(base, "secret"),
            AesDerivedKeyAlgorithm(length=128),
            True,
            (),
        )

        assert reason == "Key usages do not permit derivation"

    @pytest.mark.parametrize("length", [0, 100, -8, 128.5])
    def test_invalid_length(self, provider: SoftwareProvider, length: Any) -> None:
        base = ok(provider.import_key, "raw", bytes(16), HkdfKeyAlgorithm(), False, ("deriveKey",))

        reason = refused(
            provider.derive_key,
            HkdfDeriveParams(),
            ProviderKey(base, "secret"),
            AesDerivedKeyAlgorithm(length=length),
            True,
            (),
        )

        assert reason.startswith("Invalid derived key length")


class TestCipher:
    """Тесты encrypt/decrypt AES-GCM."""

    def test_matches_aesgcm(self, provider: SoftwareProvider) -> None:
        key = bytes(range(32))
        iv = bytes(12)
        ref = import_aes(provider, key)

        ciphertext = ok(provider.encrypt, AesGcmParams(iv=iv), ProviderKey(ref, "secret"), b"hi")

        assert ciphertext == AESGCM(key).encrypt(iv, b"hi", None)
        assert ok(provider.decrypt, AesGcmParams(iv=iv), ProviderKey(ref, "secret"), ciphertext) == (
            b"hi"
        )

    def test_short_tag(self, provider: SoftwareProvider) -> None:
        ref = import_aes(provider, bytes(16))
        params = AesGcmParams(iv=bytes(12), tag_length=96)

        ciphertext = ok(provider.encrypt, params, ProviderKey(ref, "secret"), b"payload")

        assert len(ciphertext) == len(b"payload") + 12
        assert ok(provider.decrypt, params, ProviderKey(ref, "secret"), ciphertext) == b"payload"

    def test_tampered_ciphertext(self, provider: SoftwareProvider) -> None:
        ref = import_aes(provider, bytes(16))
        params = AesGcmParams(iv=bytes(12))
        ciphertext = bytearray(ok(provider.encrypt, params, ProviderKey(ref, "secret"), b"data"))
        ciphertext[0] ^= 0xFF

        reason = refused(provider.decrypt, params, ProviderKey(ref, "secret"), bytes(ciphertext))

        assert reason == "Decryption failed: authentication tag mismatch"

    @pytest.mark.parametrize("tag_length", [0, 8, 100, 136, -128])
    def test_unsupported_tag_length(self, provider: SoftwareProvider, tag_length: int) -> None:
        ref = import_aes(provider, bytes(16))

        reason = refused(
            provider.encrypt,
            AesGcmParams(iv=bytes(12), tag_length=tag_length),
            ProviderKey(ref, "secret"),
            b"data",
        )

        assert reason == f"Unsupported tag length: {tag_length}"

    def test_missing_usage(self, provider: SoftwareProvider) -> None:
        ref = import_aes(provider, bytes(16), usages=("decrypt",))

        reason = refused(
            provider.encrypt, AesGcmParams(iv=bytes(12)), ProviderKey(ref, "secret"), b"x"
        )

        assert reason == "Key usages do not permit encrypt"

    def test_non_aes_key(self, provider: SoftwareProvider) -> None:
        ref = ok(provider.import_key, "raw", bytes(16), HkdfKeyAlgorithm(), False, ("encrypt",))

        reason = refused(
            provider.encrypt, AesGcmParams(iv=bytes(12)), ProviderKey(ref, "secret"), b"x"
        )

        assert reason == "Key is not an AES-GCM key"

    def test_ciphertext_shorter_than_tag(self, provider: SoftwareProvider) -> None:
        ref = import_aes(provider, bytes(16))

        reason = refused(
            provider.decrypt, AesGcmParams(iv=bytes(12)), ProviderKey(ref, "secret"), b"short"
        )

        assert "shorter than the authentication tag" in reason


class TestThreadPool:
    """Тесты THREAD_POOL режима."""

    def test_completes_from_worker(self) -> None:
        provider = SoftwareProvider(ProviderConfig(max_workers=2))
        try:
            completion = call(provider.digest, "SHA-256", b"abc")
        finally:
            provider.close()

        assert completion.value == hashlib.sha256(b"abc").digest()
