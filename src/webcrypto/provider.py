# -*- coding: utf-8 -*-
"""
RU: Программный Provider на библиотеке cryptography (SHA, AES-GCM, ECDH P-256, HKDF).
EN: Reference software Provider backed by the `cryptography` library.

Design:
- Implements ProviderProtocol; the facade never imports cryptography itself.
- Keys live in an in-memory table keyed by integer references; bytes never
  leave it except through export_key.
- Usages and extractability are enforced here, refusals are reported via
  completion.reject with a human-readable reason.
- INLINE mode completes on the calling thread; THREAD_POOL mode runs work
  in a ThreadPoolExecutor and completes from the worker thread.
- No secrets are logged; only structural events.

Supported:
    digest:   SHA-1, SHA-256, SHA-384, SHA-512
    import:   AES-GCM raw (16/24/32 bytes), HKDF raw, ECDH spki/raw/pkcs8 (P-256)
    generate: ECDH P-256 pair
    derive:   ECDH (shared secret prefix), HKDF -> AES-GCM secret
    export:   secret raw; public raw (uncompressed point) and spki
    cipher:   AES-GCM with tag lengths 32, 64, 96, 104, 112, 120, 128
"""

from __future__ import annotations

import itertools
import logging
import secrets
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Final, Optional, Sequence, Tuple, Union

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from src.webcrypto.config import ExecutionMode, ProviderConfig, ProviderProfile
from src.webcrypto.core.descriptors import (
    AES_GCM,
    ECDH,
    HKDF as HKDF_NAME,
    P256,
    AesDerivedKeyAlgorithm,
    AesGcmParams,
    DeriveParams,
    EcdhDeriveParams,
    EcdhKeyAlgorithm,
    HkdfDeriveParams,
    KeyAlgorithm,
)
from src.webcrypto.core.protocols import CompletionProtocol, ProviderKey

_LOGGER: Final = logging.getLogger(__name__)

_HASHES: Final[Dict[str, Callable[[], hashes.HashAlgorithm]]] = {
    "SHA-1": hashes.SHA1,
    "SHA-256": hashes.SHA256,
    "SHA-384": hashes.SHA384,
    "SHA-512": hashes.SHA512,
}

AES_KEY_SIZES: Final[Tuple[int, ...]] = (16, 24, 32)
GCM_TAG_LENGTHS: Final[Tuple[int, ...]] = (32, 64, 96, 104, 112, 120, 128)
_DERIVE_USAGES: Final = frozenset({"deriveKey", "deriveBits"})


class ProviderRefusal(Exception):
    """Operation refused by the software provider; the message is the reason."""


@dataclass
class _KeyEntry:
    """
    Provider-side key.

    kind:
        secret      material is bytes
        ec-private  material is EllipticCurvePrivateKey (pkcs8 import or pair)
        ec-public   material is EllipticCurvePublicKey
    """

    kind: str
    material: Any
    algorithm: str
    extractable: bool
    usages: Tuple[str, ...]
    pair: bool = False


class SoftwareProvider:
    """
    Provider на cryptography.

    Attributes:
        config: Конфигурация исполнения
        live_key_count: Количество ключей в таблице Provider

    Example:
        >>> provider = SoftwareProvider(ProviderConfig.from_profile(ProviderProfile.INLINE))
        >>> crypto = Crypto(provider)
    """

    def __init__(self, config: Optional[ProviderConfig] = None) -> None:
        self.config = config or ProviderConfig.from_profile(ProviderProfile.DEFAULT)
        self._keys: Dict[int, _KeyEntry] = {}
        self._refs = itertools.count(1)
        self._lock = threading.RLock()
        self._executor: Optional[ThreadPoolExecutor] = None
        if self.config.execution_mode is ExecutionMode.THREAD_POOL:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_workers,
                thread_name_prefix="webcrypto-provider",
            )
        _LOGGER.debug("SoftwareProvider started (%s)", self.config.execution_mode.value)

    @property
    def live_key_count(self) -> int:
        with self._lock:
            return len(self._keys)

    def close(self) -> None:
        """Shut down the worker pool (THREAD_POOL mode)."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Synchronous calls
    # ------------------------------------------------------------------

    def fill_random(self, byte_length: int) -> bytes:
        """Return up to max_random_bytes random bytes."""
        count = max(0, min(int(byte_length), self.config.max_random_bytes))
        if count < byte_length:
            _LOGGER.warning(
                "fill_random: %d bytes requested, quota is %d",
                byte_length,
                self.config.max_random_bytes,
            )
        return secrets.token_bytes(count)

    def release_key(self, ref: Any) -> None:
        with self._lock:
            self._keys.pop(ref, None)
        _LOGGER.debug("Provider key %s released", ref)

    # ------------------------------------------------------------------
    # Asynchronous calls
    # ------------------------------------------------------------------

    def digest(self, algorithm: str, data: bytes, completion: CompletionProtocol) -> None:
        self._dispatch(completion, self._digest, algorithm, data)

    def import_key(
        self,
        format: str,
        data: bytes,
        algorithm: KeyAlgorithm,
        extractable: bool,
        usages: Sequence[str],
        completion: CompletionProtocol,
    ) -> None:
        self._dispatch(completion, self._import_key, format, data, algorithm, extractable, usages)

    def generate_key_pair(
        self,
        algorithm: EcdhKeyAlgorithm,
        extractable: bool,
        usages: Sequence[str],
        completion: CompletionProtocol,
    ) -> None:
        self._dispatch(completion, self._generate_key_pair, algorithm, extractable, usages)

    def derive_key(
        self,
        algorithm: DeriveParams,
        base_key: ProviderKey,
        derived_algorithm: AesDerivedKeyAlgorithm,
        extractable: bool,
        usages: Sequence[str],
        completion: CompletionProtocol,
    ) -> None:
        self._dispatch(
            completion,
            self._derive_key,
            algorithm,
            base_key,
            derived_algorithm,
            extractable,
            usages,
        )

    def export_key(self, format: str, key: ProviderKey, completion: CompletionProtocol) -> None:
        self._dispatch(completion, self._export_key, format, key)

    def encrypt(
        self,
        params: AesGcmParams,
        key: ProviderKey,
        data: bytes,
        completion: CompletionProtocol,
    ) -> None:
        self._dispatch(completion, self._encrypt, params, key, data)

    def decrypt(
        self,
        params: AesGcmParams,
        key: ProviderKey,
        data: bytes,
        completion: CompletionProtocol,
    ) -> None:
        self._dispatch(completion, self._decrypt, params, key, data)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, completion: CompletionProtocol, work: Callable[..., Any], *args: Any) -> None:
        if self._executor is None:
            self._run(completion, work, *args)
        else:
            self._executor.submit(self._run, completion, work, *args)

    def _run(self, completion: CompletionProtocol, work: Callable[..., Any], *args: Any) -> None:
        try:
            result = work(*args)
        except ProviderRefusal as exc:
            _LOGGER.debug("%s refused: %s", work.__name__, exc)
            completion.reject(str(exc))
        except InvalidTag:
            completion.reject("Decryption failed: authentication tag mismatch")
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            _LOGGER.debug("%s failed: %s", work.__name__, exc.__class__.__name__)
            completion.reject(f"Operation failed: {exc}")
        except Exception as exc:
            _LOGGER.exception("%s crashed", work.__name__)
            completion.reject(exc)
        else:
            completion.resolve(result)

    # ------------------------------------------------------------------
    # Work
    # ------------------------------------------------------------------

    def _digest(self, algorithm: str, data: bytes) -> bytes:
        h = hashes.Hash(self._hash(algorithm))
        h.update(data)
        return h.finalize()

    def _import_key(
        self,
        format: str,
        data: bytes,
        algorithm: KeyAlgorithm,
        extractable: bool,
        usages: Sequence[str],
    ) -> int:
        name = algorithm.name
        entry: _KeyEntry
        if name == AES_GCM and format == "raw":
            if len(data) not in AES_KEY_SIZES:
                raise ProviderRefusal(f"Invalid AES key length: {len(data) * 8} bits")
            entry = _KeyEntry("secret", data, AES_GCM, extractable, tuple(usages))
        elif name == HKDF_NAME and format == "raw":
            entry = _KeyEntry("secret", data, HKDF_NAME, extractable, tuple(usages))
        elif name == ECDH and format == "spki":
            public_key = serialization.load_der_public_key(data)
            entry = _KeyEntry(
                "ec-public", self._require_p256(public_key), ECDH, extractable, tuple(usages)
            )
        elif name == ECDH and format == "raw":
            public_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), data)
            entry = _KeyEntry("ec-public", public_key, ECDH, extractable, tuple(usages))
        elif name == ECDH and format == "pkcs8":
            private_key = serialization.load_der_private_key(data, password=None)
            entry = _KeyEntry(
                "ec-private", self._require_p256(private_key), ECDH, extractable, tuple(usages)
            )
        else:
            raise ProviderRefusal(f"Unsupported key format {format} for algorithm {name}")
        return self._store(entry)

    def _generate_key_pair(
        self,
        algorithm: EcdhKeyAlgorithm,
        extractable: bool,
        usages: Sequence[str],
    ) -> int:
        if algorithm.named_curve != P256:
            raise ProviderRefusal(f"Unsupported curve {algorithm.named_curve}")
        private_key = ec.generate_private_key(ec.SECP256R1())
        return self._store(
            _KeyEntry("ec-private", private_key, ECDH, extractable, tuple(usages), pair=True)
        )

    def _derive_key(
        self,
        algorithm: DeriveParams,
        base_key: ProviderKey,
        derived_algorithm: AesDerivedKeyAlgorithm,
        extractable: bool,
        usages: Sequence[str],
    ) -> int:
        base = self._entry(base_key.ref)
        if not _DERIVE_USAGES.intersection(base.usages):
            raise ProviderRefusal("Key usages do not permit derivation")
        length = derived_algorithm.length
        if not isinstance(length, int) or isinstance(length, bool) or length <= 0 or length % 8:
            raise ProviderRefusal(f"Invalid derived key length: {length}")
        size = length // 8

        if isinstance(algorithm, EcdhDeriveParams):
            private_key = self._private_key(base, base_key.type)
            public_key = self._public_key(algorithm.public)
            shared = private_key.exchange(ec.ECDH(), public_key)
            if size > len(shared):
                raise ProviderRefusal(
                    f"Requested {length} bits exceeds ECDH secret of {len(shared) * 8} bits"
                )
            material = shared[:size]
        elif isinstance(algorithm, HkdfDeriveParams):
            if base.kind != "secret" or base.algorithm != HKDF_NAME:
                raise ProviderRefusal("HKDF base key must be an HKDF secret")
            hkdf = HKDF(
                algorithm=self._hash(algorithm.hash),
                length=size,
                salt=algorithm.salt or None,
                info=algorithm.info,
            )
            material = hkdf.derive(base.material)
        else:
            raise ProviderRefusal(f"Unsupported derive algorithm {algorithm!r}")

        return self._store(
            _KeyEntry("secret", material, derived_algorithm.name, extractable, tuple(usages))
        )

    def _export_key(self, format: str, key: ProviderKey) -> bytes:
        entry = self._entry(key.ref)
        # Public half of a generated pair is always exportable
        public_view = entry.pair and key.type == "public"
        if entry.kind == "ec-public" and not entry.extractable:
            raise ProviderRefusal("Key is not extractable")
        if entry.kind == "ec-public" or public_view:
            public_key = self._public_key(key)
            if format == "raw":
                return public_key.public_bytes(
                    serialization.Encoding.X962,
                    serialization.PublicFormat.UncompressedPoint,
                )
            if format == "spki":
                return public_key.public_bytes(
                    serialization.Encoding.DER,
                    serialization.PublicFormat.SubjectPublicKeyInfo,
                )
        if not entry.extractable:
            raise ProviderRefusal("Key is not extractable")
        if entry.kind == "secret" and format == "raw":
            return bytes(entry.material)
        raise ProviderRefusal(f"Unsupported export format {format} for {key.type} key")

    def _encrypt(self, params: AesGcmParams, key: ProviderKey, data: bytes) -> bytes:
        material = self._cipher_key(key, "encrypt")
        tag_size = self._tag_size(params.tag_length)
        encryptor = Cipher(algorithms.AES(material), modes.GCM(params.iv)).encryptor()
        ciphertext = encryptor.update(data) + encryptor.finalize()
        return ciphertext + encryptor.tag[:tag_size]

    def _decrypt(self, params: AesGcmParams, key: ProviderKey, data: bytes) -> bytes:
        material = self._cipher_key(key, "decrypt")
        tag_size = self._tag_size(params.tag_length)
        if len(data) < tag_size:
            raise ProviderRefusal("Ciphertext is shorter than the authentication tag")
        ciphertext, tag = data[:-tag_size], data[-tag_size:]
        decryptor = Cipher(
            algorithms.AES(material),
            modes.GCM(params.iv, tag, min_tag_length=tag_size),
        ).decryptor()
        return decryptor.update(ciphertext) + decryptor.finalize()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _store(self, entry: _KeyEntry) -> int:
        with self._lock:
            ref = next(self._refs)
            self._keys[ref] = entry
        _LOGGER.debug("Provider key %d stored (%s, %s)", ref, entry.kind, entry.algorithm)
        return ref

    def _entry(self, ref: Any) -> _KeyEntry:
        with self._lock:
            entry = self._keys.get(ref)
        if entry is None:
            raise ProviderRefusal("Unknown key reference")
        return entry

    @staticmethod
    def _hash(name: str) -> hashes.HashAlgorithm:
        factory = _HASHES.get(name)
        if factory is None:
            raise ProviderRefusal(f"Unsupported hash {name}")
        return factory()

    @staticmethod
    def _require_p256(key: Any) -> Any:
        if not isinstance(key, (ec.EllipticCurvePublicKey, ec.EllipticCurvePrivateKey)):
            raise ProviderRefusal("Key is not an EC key")
        if not isinstance(key.curve, ec.SECP256R1):
            raise ProviderRefusal(f"Unsupported curve {key.curve.name}")
        return key

    def _private_key(self, entry: _KeyEntry, role: str) -> ec.EllipticCurvePrivateKey:
        if entry.kind != "ec-private" or role != "private":
            raise ProviderRefusal("ECDH base key must be a private key")
        return entry.material

    def _public_key(self, key: ProviderKey) -> ec.EllipticCurvePublicKey:
        entry = self._entry(key.ref)
        if entry.kind == "ec-public":
            return entry.material
        if entry.kind == "ec-private":
            return entry.material.public_key()
        raise ProviderRefusal("ECDH public key expected")

    def _cipher_key(self, key: ProviderKey, usage: str) -> bytes:
        entry = self._entry(key.ref)
        if entry.kind != "secret" or entry.algorithm != AES_GCM:
            raise ProviderRefusal("Key is not an AES-GCM key")
        if usage not in entry.usages:
            raise ProviderRefusal(f"Key usages do not permit {usage}")
        if len(entry.material) not in AES_KEY_SIZES:
            raise ProviderRefusal(f"Invalid AES key length: {len(entry.material) * 8} bits")
        return entry.material

    @staticmethod
    def _tag_size(tag_length: Union[int, float]) -> int:
        if tag_length not in GCM_TAG_LENGTHS:
            raise ProviderRefusal(f"Unsupported tag length: {tag_length}")
        return int(tag_length) // 8


__all__ = [
    "SoftwareProvider",
    "ProviderRefusal",
    "AES_KEY_SIZES",
    "GCM_TAG_LENGTHS",
]
