# -*- coding: utf-8 -*-
"""
RU: Фасад SubtleCrypto: валидация аргументов и асинхронные вызовы Provider.
EN: SubtleCrypto facade composing synchronous validation with Provider calls.

Design:
- Operations with fixed arity accept positional arguments and check the
  count themselves, so a wrong count surfaces as ArgumentCountError.
- Validation runs synchronously when an operation is called; the returned
  awaitable resolves or rejects exactly once. digest is the exception:
  all of its failures surface when awaited.
- Every Provider call goes through a one-shot Completion.
- Keys produced by the Provider are owned by KeyHandleManager; the transient
  key used by derive_bits is disposed on every exit path.
- No secrets are logged; only operation names, formats and sizes.

Example:
    >>> subtle = SubtleCrypto(SoftwareProvider())
    >>> key = await subtle.import_key("raw", raw, "AES-GCM", False, ["encrypt", "decrypt"])
    >>> ct = await subtle.encrypt({"name": "AES-GCM", "iv": iv}, key, b"payload")
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Final, Optional, Sequence, Tuple

from src.webcrypto.completion import Completion
from src.webcrypto.core.descriptors import (
    AES_GCM,
    DIGEST_ALGORITHMS,
    ECDH,
    EXPORT_FORMATS,
    IMPORT_FORMATS,
    AesDerivedKeyAlgorithm,
    AesGcmParams,
    DeriveParams,
    EcdhDeriveParams,
    EcdhKeyAlgorithm,
    KeyAlgorithm,
    collapse_descriptor,
)
from src.webcrypto.core.exceptions import (
    AlgorithmMismatchError,
    ProviderError,
    ProviderResultError,
)
from src.webcrypto.core.protocols import ProviderKey, ProviderProtocol
from src.webcrypto.keys import CryptoKey, KeyHandleManager
from src.webcrypto.validation import (
    ValueKind,
    check_aes_gcm_params,
    check_derive_algorithm,
    check_derived_key_algorithm,
    check_generate_algorithm,
    check_import_algorithm,
    require_arity,
    require_buffer_like,
    require_enum_member,
    require_type,
    usages_copy,
)

_LOGGER: Final = logging.getLogger(__name__)


class SubtleCrypto:
    """
    WebCrypto SubtleCrypto поверх внедрённого Provider.

    Attributes:
        keys: Менеджер арены ключей (единственный владелец ссылок Provider)
    """

    def __init__(
        self,
        provider: ProviderProtocol,
        keys: Optional[KeyHandleManager] = None,
    ) -> None:
        self._provider = provider
        self.keys = keys if keys is not None else KeyHandleManager(provider)

    # ------------------------------------------------------------------
    # digest
    # ------------------------------------------------------------------

    async def digest(self, *args: Any) -> bytes:
        """
        digest(algorithm, data) -> bytes

        Coroutine function: argument errors are raised when awaited.

        Raises:
            ArgumentCountError: fewer than 2 arguments
            AlgorithmMismatchError: name outside SHA-1/256/384/512
            ValidationError: data is not buffer-like
            ProviderResultError: Provider returned empty or non-bytes result
        """
        require_arity(len(args), 2, "SubtleCrypto.digest", minimum=True)
        algorithm, data = args[0], args[1]
        if not isinstance(algorithm, str) or algorithm not in DIGEST_ALGORITHMS:
            raise AlgorithmMismatchError(
                f"Algorithm: Unrecognized name {algorithm}", field="algorithm"
            )
        buffer = require_buffer_like(data, "data")
        _LOGGER.debug("digest: %s over %d bytes", algorithm, len(buffer))
        result = await self._call(
            "subtleDigest", self._provider.digest, algorithm, buffer, algorithm=algorithm
        )
        if not isinstance(result, bytes) or len(result) == 0:
            raise ProviderResultError(
                "Internal Type Error: result is not valid bytes",
                operation="subtleDigest",
                algorithm=algorithm,
            )
        return result

    # ------------------------------------------------------------------
    # importKey / exportKey
    # ------------------------------------------------------------------

    def import_key(self, *args: Any) -> Awaitable[CryptoKey]:
        """
        import_key(format, key_data, algorithm, extractable, usages) -> CryptoKey

        A descriptor {name: X} is stored on the key as the bare string X.
        """
        require_arity(len(args), 5, "SubtleCrypto.importKey")
        format, key_data, algorithm, extractable, usages = args
        require_enum_member(format, IMPORT_FORMATS, "format")
        data = require_buffer_like(key_data, "keyData")
        variant = check_import_algorithm(algorithm)
        require_type(extractable, ValueKind.BOOLEAN, "extractable")
        key_usages = usages_copy(usages)
        _LOGGER.debug("importKey: format=%s algorithm=%s", format, variant.name)
        return self._import_key(
            format, data, collapse_descriptor(algorithm), variant, extractable, key_usages
        )

    async def _import_key(
        self,
        format: str,
        data: bytes,
        descriptor: Any,
        variant: KeyAlgorithm,
        extractable: bool,
        usages: Tuple[str, ...],
    ) -> CryptoKey:
        key_id = self.keys.create()
        try:
            ref = await self._call(
                "subtleImportKey",
                self._provider.import_key,
                format,
                data,
                variant,
                extractable,
                usages,
                algorithm=variant.name,
                on_discard=self._provider.release_key,
            )
            self.keys.bind(key_id, ref)
        except BaseException:
            self.keys.dispose(key_id)
            raise
        return self.keys.adopt(
            CryptoKey(
                key_id,
                algorithm=descriptor,
                extractable=extractable,
                usages=usages,
                type=_imported_key_type(format, variant),
            )
        )

    def export_key(self, *args: Any) -> Awaitable[bytes]:
        """
        export_key(format, key) -> bytes

        Export of a non-extractable key is refused by the Provider.
        """
        require_arity(len(args), 2, "SubtleCrypto.exportKey")
        format, key = args
        require_enum_member(format, EXPORT_FORMATS, "format")
        require_type(key, ValueKind.CRYPTO_KEY, "key")
        provider_key = self.keys.provider_key(key)
        _LOGGER.debug("exportKey: format=%s type=%s", format, key.type)
        return self._call("subtleExportKey", self._provider.export_key, format, provider_key)

    # ------------------------------------------------------------------
    # generateKey
    # ------------------------------------------------------------------

    def generate_key(self, *args: Any) -> Awaitable[Dict[str, CryptoKey]]:
        """
        generate_key(algorithm, extractable, usages) -> {"privateKey", "publicKey"}

        Only ECDH P-256. Both keys are views of one Provider-side pair.
        The public view is always extractable and has no usages.
        """
        require_arity(len(args), 3, "SubtleCrypto.generateKey")
        algorithm, extractable, usages = args
        variant = check_generate_algorithm(algorithm)
        require_type(extractable, ValueKind.BOOLEAN, "extractable")
        key_usages = usages_copy(usages)
        _LOGGER.debug("generateKey: %s %s", variant.name, variant.named_curve)
        return self._generate_key(
            collapse_descriptor(algorithm), variant, extractable, key_usages
        )

    async def _generate_key(
        self,
        descriptor: Any,
        variant: EcdhKeyAlgorithm,
        extractable: bool,
        usages: Tuple[str, ...],
    ) -> Dict[str, CryptoKey]:
        key_id = self.keys.create()
        try:
            ref = await self._call(
                "subtleGenerateKey",
                self._provider.generate_key_pair,
                variant,
                extractable,
                usages,
                algorithm=ECDH,
                on_discard=self._provider.release_key,
            )
            self.keys.bind(key_id, ref)
        except BaseException:
            self.keys.dispose(key_id)
            raise
        pair = CryptoKey(key_id, algorithm=descriptor, extractable=extractable, usages=usages)
        public = self.keys.create_view(pair, "public", extractable=True, usages=())
        return {
            "privateKey": self.keys.adopt(self.keys.create_view(pair, "private")),
            "publicKey": self.keys.adopt(public),
        }

    # ------------------------------------------------------------------
    # deriveBits / deriveKey
    # ------------------------------------------------------------------

    def derive_bits(self, *args: Any) -> Awaitable[bytes]:
        """
        derive_bits(algorithm, base_key, length) -> bytes

        Derives into a transient AES-GCM-tagged key and exports it raw.
        The transient key is disposed on success and on Provider rejection.
        """
        require_arity(len(args), 3, "SubtleCrypto.deriveBits")
        algorithm, base_key, length = args
        params = check_derive_algorithm(algorithm)
        require_type(base_key, ValueKind.CRYPTO_KEY, "baseKey")
        require_type(length, ValueKind.NUMBER, "length")
        provider_params = self._provider_params(params)
        base = self.keys.provider_key(base_key)
        _LOGGER.debug("deriveBits: %s length=%s", params.name, length)
        return self._derive_bits(provider_params, base, AesDerivedKeyAlgorithm(length=length))

    async def _derive_bits(
        self,
        params: DeriveParams,
        base: ProviderKey,
        target: AesDerivedKeyAlgorithm,
    ) -> bytes:
        with self.keys.transient() as key_id:
            ref = await self._call(
                "subtleDeriveKey",
                self._provider.derive_key,
                params,
                base,
                target,
                True,
                (),
                algorithm=params.name,
                on_discard=self._provider.release_key,
            )
            self.keys.bind(key_id, ref)
            return await self._call(
                "subtleExportKey",
                self._provider.export_key,
                "raw",
                ProviderKey(ref=ref, type="secret"),
            )

    def derive_key(self, *args: Any) -> Awaitable[CryptoKey]:
        """
        derive_key(algorithm, base_key, derived_key_algorithm, extractable, usages) -> CryptoKey

        derived_key_algorithm is restricted to {name: "AES-GCM", length}.
        The resulting key carries the (collapsed) derive algorithm, as given.
        """
        require_arity(len(args), 5, "SubtleCrypto.deriveKey")
        algorithm, base_key, derived_key_algorithm, extractable, usages = args
        params = check_derive_algorithm(algorithm)
        target = check_derived_key_algorithm(derived_key_algorithm)
        require_type(base_key, ValueKind.CRYPTO_KEY, "baseKey")
        require_type(extractable, ValueKind.BOOLEAN, "extractable")
        key_usages = usages_copy(usages)
        provider_params = self._provider_params(params)
        base = self.keys.provider_key(base_key)
        _LOGGER.debug("deriveKey: %s -> %s(%s)", params.name, target.name, target.length)
        return self._derive_key(
            collapse_descriptor(algorithm), provider_params, base, target, extractable, key_usages
        )

    async def _derive_key(
        self,
        descriptor: Any,
        params: DeriveParams,
        base: ProviderKey,
        target: AesDerivedKeyAlgorithm,
        extractable: bool,
        usages: Tuple[str, ...],
    ) -> CryptoKey:
        key_id = self.keys.create()
        try:
            ref = await self._call(
                "subtleDeriveKey",
                self._provider.derive_key,
                params,
                base,
                target,
                extractable,
                usages,
                algorithm=params.name,
                on_discard=self._provider.release_key,
            )
            self.keys.bind(key_id, ref)
        except BaseException:
            self.keys.dispose(key_id)
            raise
        return self.keys.adopt(
            CryptoKey(
                key_id,
                algorithm=descriptor,
                extractable=extractable,
                usages=usages,
                type="secret",
            )
        )

    # ------------------------------------------------------------------
    # encrypt / decrypt
    # ------------------------------------------------------------------

    def encrypt(self, *args: Any) -> Awaitable[bytes]:
        """encrypt({name: "AES-GCM", iv, tagLength?}, key, data) -> ciphertext || tag"""
        params, provider_key, data = self._check_cipher_args("SubtleCrypto.encrypt", args)
        return self._call(
            "subtleEncrypt",
            self._provider.encrypt,
            params,
            provider_key,
            data,
            algorithm=AES_GCM,
        )

    def decrypt(self, *args: Any) -> Awaitable[bytes]:
        """
        decrypt({name: "AES-GCM", iv, tagLength?}, key, data) -> plaintext

        Authentication failure surfaces as ProviderError when awaited.
        """
        params, provider_key, data = self._check_cipher_args("SubtleCrypto.decrypt", args)
        return self._call(
            "subtleDecrypt",
            self._provider.decrypt,
            params,
            provider_key,
            data,
            algorithm=AES_GCM,
        )

    def _check_cipher_args(
        self, operation: str, args: Sequence[Any]
    ) -> Tuple[AesGcmParams, ProviderKey, bytes]:
        require_arity(len(args), 3, operation)
        algorithm, key, data = args
        params = check_aes_gcm_params(algorithm)
        require_type(key, ValueKind.CRYPTO_KEY, "key")
        buffer = require_buffer_like(data, "data")
        _LOGGER.debug("%s: %d bytes, tagLength=%s", operation, len(buffer), params.tag_length)
        return params, self.keys.provider_key(key), buffer

    # ------------------------------------------------------------------
    # Provider glue
    # ------------------------------------------------------------------

    def _provider_params(self, params: DeriveParams) -> DeriveParams:
        if isinstance(params, EcdhDeriveParams):
            return replace(params, public=self.keys.provider_key(params.public))
        return params

    async def _call(
        self,
        operation: str,
        method: Callable[..., None],
        *args: Any,
        algorithm: Optional[str] = None,
        on_discard: Optional[Callable[[Any], None]] = None,
    ) -> Any:
        completion = Completion(
            asyncio.get_running_loop(), operation, algorithm=algorithm, on_discard=on_discard
        )
        try:
            method(*args, completion)
        except Exception as exc:
            if completion.settled:
                raise
            completion.reject(exc)
        try:
            return await completion.future
        except ProviderError as exc:
            _LOGGER.warning("%s rejected by provider: %s", operation, exc.message)
            raise

    # WebCrypto spelling
    importKey = import_key
    exportKey = export_key
    generateKey = generate_key
    deriveBits = derive_bits
    deriveKey = derive_key


def _imported_key_type(format: str, variant: KeyAlgorithm) -> str:
    if format == "pkcs8":
        return "private"
    if format == "spki" or variant.name == ECDH:
        return "public"
    return "secret"


__all__ = ["SubtleCrypto"]
