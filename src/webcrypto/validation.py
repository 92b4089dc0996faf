# -*- coding: utf-8 -*-
"""
RU: Синхронные проверки аргументов операций SubtleCrypto.
EN: Synchronous argument validation for the SubtleCrypto facade.

Primitives check arity, allowed keys, enum membership and runtime type.
Composite validators select a typed descriptor variant from untyped input
and report a precise error if none matches. Order of checks: arity, then
structural shape, then per-field checks left to right.

Messages name the violated contract and render the offending value.
Buffers are rendered by type and length only, never by content.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Collection, Iterable, Mapping, Optional, Tuple, Type, Union

from src.webcrypto.core.descriptors import (
    AES_GCM,
    AES_GCM_PARAM_FIELDS,
    AES_KEY_FIELDS,
    DEFAULT_TAG_LENGTH,
    DERIVE_ALGORITHM_NAMES,
    DERIVE_FIELDS,
    DERIVED_KEY_FIELDS,
    ECDH,
    ECDH_KEY_FIELDS,
    HKDF,
    IMPORT_ALGORITHM_NAMES,
    IMPORT_DESCRIPTOR_NAMES,
    P256,
    AesDerivedKeyAlgorithm,
    AesGcmKeyAlgorithm,
    AesGcmParams,
    DeriveParams,
    EcdhDeriveParams,
    EcdhKeyAlgorithm,
    HkdfDeriveParams,
    HkdfKeyAlgorithm,
    KeyAlgorithm,
)
from src.webcrypto.core.exceptions import (
    AlgorithmMismatchError,
    ArgumentCountError,
    ValidationError,
)
from src.webcrypto.keys import CryptoKey

_FLOAT_FORMATS = frozenset("efd")
_MAX_RENDER = 50


class ValueKind(str, Enum):
    """Ожидаемый runtime-тип значения для require_type."""

    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    BUFFER = "buffer"
    CRYPTO_KEY = "CryptoKey"


# ==============================================================================
# RENDERING
# ==============================================================================


def render_value(value: Any) -> str:
    """
    Render a value for an error message without leaking buffer content.

    Example:
        >>> render_value("jwk")
        '"jwk"'
        >>> render_value(b"secret")
        'bytes(6)'
    """
    if value is None:
        return "None"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        text = value if len(value) <= _MAX_RENDER else value[:_MAX_RENDER] + "..."
        return f'"{text}"'
    if isinstance(value, CryptoKey):
        return f"CryptoKey({value.type})"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, Mapping):
        inner = ", ".join(f"{k}: {render_value(v)}" for k, v in value.items())
        text = "{" + inner + "}"
        return text if len(text) <= _MAX_RENDER else text[:_MAX_RENDER] + "...}"
    if isinstance(value, (list, tuple)):
        return f"{type(value).__name__}({len(value)})"
    try:
        view = memoryview(value)
    except TypeError:
        return type(value).__name__
    return f"{type(value).__name__}({view.nbytes})"


# ==============================================================================
# PRIMITIVES
# ==============================================================================


def require_arity(
    received: int,
    expected: int,
    operation: str,
    *,
    minimum: bool = False,
) -> None:
    """
    Check the argument count of a fixed-arity operation.

    Raises:
        ArgumentCountError: count differs (or is below, when minimum=True)
    """
    if minimum:
        if received < expected:
            raise ArgumentCountError(
                operation,
                expected,
                received,
                message=f"Not enough arguments to {operation}",
            )
        return
    if received != expected:
        raise ArgumentCountError(operation, expected, received)


def require_keys_subset(record: Any, allowed_keys: Collection[str], name: str) -> None:
    """
    Reject mapping keys outside allowed_keys.

    Raises:
        ValidationError: record is not a mapping or has unknown keys
    """
    require_type(record, ValueKind.MAPPING, name)
    unknown = [key for key in record.keys() if key not in allowed_keys]
    if unknown:
        allowed = ", ".join(sorted(allowed_keys))
        raise ValidationError(
            f"Object {name} contains unsupported key(s) "
            f"{', '.join(repr(k) for k in unknown)} (allowed: {allowed})",
            field=name,
        )


def require_enum_member(
    value: Any,
    allowed_values: Iterable[Any],
    field_name: str,
    *,
    error: Type[ValidationError] = ValidationError,
) -> None:
    """
    Require value to be exactly one of allowed_values.

    Args:
        error: ValidationError subclass to raise (AlgorithmMismatchError
            for algorithm names)
    """
    allowed = tuple(allowed_values)
    if not isinstance(value, str) or value not in allowed:
        choices = ", ".join(f'"{v}"' for v in allowed)
        raise error(
            f"{field_name} must be {choices}, got {render_value(value)}",
            field=field_name,
        )


def require_type(
    value: Any,
    kind: ValueKind,
    name: str,
    *,
    nullable: bool = False,
) -> None:
    """
    Check the runtime shape of value.

    NUMBER accepts int and float (NaN included) but not bool.
    SEQUENCE accepts list and tuple only.

    Raises:
        ValidationError: shape mismatch
    """
    if value is None and nullable:
        return
    if kind is ValueKind.BOOLEAN:
        ok = isinstance(value, bool)
    elif kind is ValueKind.NUMBER:
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif kind is ValueKind.STRING:
        ok = isinstance(value, str)
    elif kind is ValueKind.SEQUENCE:
        ok = isinstance(value, (list, tuple))
    elif kind is ValueKind.MAPPING:
        ok = isinstance(value, Mapping)
    elif kind is ValueKind.CRYPTO_KEY:
        ok = isinstance(value, CryptoKey)
    elif kind is ValueKind.BUFFER:
        ok = _as_buffer(value) is not None
    else:  # pragma: no cover
        raise ValueError(f"Unknown value kind: {kind!r}")
    if not ok:
        raise ValidationError(
            f"Expected {name} to be of type {kind.value}, got {render_value(value)}",
            field=name,
        )


def require_buffer_like(value: Any, name: str = "data") -> bytes:
    """
    Normalize a non-float buffer to immutable bytes.

    Raises:
        ValidationError: value does not expose an accepted buffer
    """
    view = _as_buffer(value)
    if view is None:
        raise ValidationError(
            f"Argument {render_value(value)} is not an accepted array type",
            field=name,
        )
    data = view.tobytes()
    view.release()
    return data


def require_writable_view(value: Any) -> memoryview:
    """
    Validate a buffer view for in-place random filling.

    Returns:
        Writable byte-cast memoryview over value

    Raises:
        ValidationError: not a buffer, float elements, read-only or not contiguous
    """
    view = _as_buffer(value)
    if view is None or view.readonly or not view.c_contiguous:
        raise ValidationError(
            f"Argument {render_value(value)} is not an accepted array type",
            field="typedArray",
        )
    return view.cast("B")


def _as_buffer(value: Any) -> Optional[memoryview]:
    if value is None or isinstance(value, (str, bool, int, float)):
        return None
    try:
        view = memoryview(value)
    except TypeError:
        return None
    if view.format and view.format[-1] in _FLOAT_FORMATS:
        return None
    return view


# ==============================================================================
# COMPOSITE VALIDATORS
# ==============================================================================


def check_import_algorithm(algorithm: Any) -> KeyAlgorithm:
    """
    Select the import variant: bare ECDH/AES-GCM/HKDF, ECDH {name, namedCurve}
    or AES-GCM {name}.
    """
    if isinstance(algorithm, str):
        require_enum_member(
            algorithm, IMPORT_ALGORITHM_NAMES, "algorithm", error=AlgorithmMismatchError
        )
        if algorithm == ECDH:
            return EcdhKeyAlgorithm()
        if algorithm == HKDF:
            return HkdfKeyAlgorithm()
        return AesGcmKeyAlgorithm()
    require_type(algorithm, ValueKind.MAPPING, "algorithm")
    require_enum_member(
        algorithm.get("name"),
        IMPORT_DESCRIPTOR_NAMES,
        "algorithm.name",
        error=AlgorithmMismatchError,
    )
    if algorithm["name"] == ECDH:
        require_keys_subset(algorithm, ECDH_KEY_FIELDS, "algorithm")
        require_enum_member(algorithm.get("namedCurve"), (P256,), "algorithm.namedCurve")
        return EcdhKeyAlgorithm(named_curve=algorithm["namedCurve"])
    require_keys_subset(algorithm, AES_KEY_FIELDS, "algorithm")
    return AesGcmKeyAlgorithm()


def check_generate_algorithm(algorithm: Any) -> EcdhKeyAlgorithm:
    """Only ECDH on P-256 can be generated."""
    require_keys_subset(algorithm, ECDH_KEY_FIELDS, "algorithm")
    require_enum_member(
        algorithm.get("name"), (ECDH,), "algorithm.name", error=AlgorithmMismatchError
    )
    require_enum_member(algorithm.get("namedCurve"), (P256,), "algorithm.namedCurve")
    return EcdhKeyAlgorithm(named_curve=algorithm["namedCurve"])


def check_derive_algorithm(algorithm: Any) -> DeriveParams:
    """
    Derive-algorithm gate shared by derive_bits and derive_key.

    Bare "HKDF" passes unchanged (defaults: SHA-256, empty salt and info).
    AES-GCM is a derivation target, never a source.

    Raises:
        AlgorithmMismatchError: AES-GCM or a name outside {ECDH, HKDF}
        ValidationError: unknown keys or bad ECDH/HKDF fields
    """
    if algorithm == HKDF:
        return HkdfDeriveParams()
    if algorithm == AES_GCM:
        raise AlgorithmMismatchError(
            "AES-GCM not supported for this function", field="algorithm", algorithm=AES_GCM
        )
    if isinstance(algorithm, str):
        algorithm = {"name": algorithm}
    require_keys_subset(algorithm, DERIVE_FIELDS, "algorithm")
    name = algorithm.get("name")
    if name == AES_GCM:
        raise AlgorithmMismatchError(
            "AES-GCM not supported for this function",
            field="algorithm.name",
            algorithm=AES_GCM,
        )
    require_enum_member(
        name, DERIVE_ALGORITHM_NAMES, "algorithm.name", error=AlgorithmMismatchError
    )
    if name == ECDH:
        require_enum_member(algorithm.get("namedCurve"), (P256,), "algorithm.namedCurve")
        require_type(algorithm.get("public"), ValueKind.CRYPTO_KEY, "algorithm.public")
        return EcdhDeriveParams(public=algorithm["public"], named_curve=algorithm["namedCurve"])
    require_type(algorithm.get("hash"), ValueKind.STRING, "algorithm.hash")
    return HkdfDeriveParams(
        hash=algorithm["hash"],
        salt=require_buffer_like(algorithm.get("salt"), "algorithm.salt"),
        info=require_buffer_like(algorithm.get("info"), "algorithm.info"),
    )


def check_derived_key_algorithm(algorithm: Any) -> AesDerivedKeyAlgorithm:
    """derivedKeyAlgorithm is restricted to {name: "AES-GCM", length: number}."""
    require_keys_subset(algorithm, DERIVED_KEY_FIELDS, "derivedKeyAlgorithm")
    require_enum_member(
        algorithm.get("name"),
        (AES_GCM,),
        "derivedKeyAlgorithm.name",
        error=AlgorithmMismatchError,
    )
    require_type(algorithm.get("length"), ValueKind.NUMBER, "derivedKeyAlgorithm.length")
    return AesDerivedKeyAlgorithm(length=algorithm["length"])


def check_aes_gcm_params(algorithm: Any) -> AesGcmParams:
    """
    AES-GCM encrypt/decrypt parameters.

    tagLength absent or NaN becomes 128; other values pass through to the
    Provider unchecked.
    """
    require_keys_subset(algorithm, AES_GCM_PARAM_FIELDS, "algorithm")
    require_enum_member(
        algorithm.get("name"), (AES_GCM,), "algorithm.name", error=AlgorithmMismatchError
    )
    tag_length = algorithm.get("tagLength")
    require_type(tag_length, ValueKind.NUMBER, "algorithm.tagLength", nullable=True)
    iv = require_buffer_like(algorithm.get("iv"), "algorithm.iv")
    return AesGcmParams(iv=iv, tag_length=effective_tag_length(tag_length))


def effective_tag_length(tag_length: Optional[Union[int, float]]) -> Union[int, float]:
    """128 when absent or NaN, otherwise unchanged."""
    if tag_length is None or (isinstance(tag_length, float) and math.isnan(tag_length)):
        return DEFAULT_TAG_LENGTH
    return tag_length


def usages_copy(usages: Any) -> Tuple[str, ...]:
    """Validate usages as a sequence and return a frozen copy."""
    require_type(usages, ValueKind.SEQUENCE, "keyUsages")
    return tuple(usages)


__all__ = [
    "ValueKind",
    "render_value",
    "require_arity",
    "require_keys_subset",
    "require_enum_member",
    "require_type",
    "require_buffer_like",
    "require_writable_view",
    "check_import_algorithm",
    "check_generate_algorithm",
    "check_derive_algorithm",
    "check_derived_key_algorithm",
    "check_aes_gcm_params",
    "effective_tag_length",
    "usages_copy",
]
