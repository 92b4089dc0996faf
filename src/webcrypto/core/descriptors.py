"""
Дескрипторы алгоритмов WebCrypto.

Каждое семейство алгоритмов представлено отдельным immutable dataclass
(tagged variant) со своим набором полей. Валидатор выбирает нужный вариант
из нетипизированного ввода (str или dict), а Provider получает уже
типизированные параметры.

Варианты:
    Импорт/генерация:
        - EcdhKeyAlgorithm      {name: "ECDH", namedCurve: "P-256"}
        - AesGcmKeyAlgorithm    {name: "AES-GCM"}
        - HkdfKeyAlgorithm      "HKDF"
    Вывод ключей (derive source):
        - EcdhDeriveParams      {name: "ECDH", namedCurve, public}
        - HkdfDeriveParams      {name: "HKDF", hash, salt, info} | "HKDF"
    Цель вывода:
        - AesDerivedKeyAlgorithm {name: "AES-GCM", length}
    Шифрование:
        - AesGcmParams          {name: "AES-GCM", iv, tagLength?}

Example:
    >>> params = AesGcmParams(iv=b"\\x00" * 12)
    >>> params.tag_length
    128
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Final, FrozenSet, Mapping, Tuple, Union

# ==============================================================================
# ENUMERATED VALUES
# ==============================================================================

ECDH: Final[str] = "ECDH"
AES_GCM: Final[str] = "AES-GCM"
HKDF: Final[str] = "HKDF"

P256: Final[str] = "P-256"

DIGEST_ALGORITHMS: Final[Tuple[str, ...]] = ("SHA-1", "SHA-256", "SHA-384", "SHA-512")

IMPORT_FORMATS: Final[Tuple[str, ...]] = ("spki", "pkcs8", "raw")
EXPORT_FORMATS: Final[Tuple[str, ...]] = ("raw", "spki")

IMPORT_ALGORITHM_NAMES: Final[Tuple[str, ...]] = (ECDH, AES_GCM, HKDF)
IMPORT_DESCRIPTOR_NAMES: Final[Tuple[str, ...]] = (ECDH, AES_GCM)
DERIVE_ALGORITHM_NAMES: Final[Tuple[str, ...]] = (ECDH, HKDF)

ECDH_KEY_FIELDS: Final[FrozenSet[str]] = frozenset({"name", "namedCurve"})
AES_KEY_FIELDS: Final[FrozenSet[str]] = frozenset({"name"})
DERIVE_FIELDS: Final[FrozenSet[str]] = frozenset(
    {"name", "namedCurve", "public", "hash", "salt", "info"}
)
DERIVED_KEY_FIELDS: Final[FrozenSet[str]] = frozenset({"name", "length"})
AES_GCM_PARAM_FIELDS: Final[FrozenSet[str]] = frozenset({"name", "iv", "tagLength"})

DEFAULT_TAG_LENGTH: Final[int] = 128
DEFAULT_HKDF_HASH: Final[str] = "SHA-256"

KEY_TYPES: Final[Tuple[str, ...]] = ("secret", "private", "public")

# Descriptor as supplied by application code
Descriptor = Union[str, Mapping[str, Any]]


# ==============================================================================
# KEY ALGORITHMS (import / generate)
# ==============================================================================


@dataclass(frozen=True)
class EcdhKeyAlgorithm:
    """ECDH ключ на кривой named_curve."""

    named_curve: str = P256
    name: str = ECDH


@dataclass(frozen=True)
class AesGcmKeyAlgorithm:
    """Сырой симметричный ключ AES-GCM."""

    name: str = AES_GCM


@dataclass(frozen=True)
class HkdfKeyAlgorithm:
    """Исходный материал для HKDF (только для derive)."""

    name: str = HKDF


KeyAlgorithm = Union[EcdhKeyAlgorithm, AesGcmKeyAlgorithm, HkdfKeyAlgorithm]


# ==============================================================================
# DERIVE SOURCES
# ==============================================================================


@dataclass(frozen=True)
class EcdhDeriveParams:
    """
    Параметры ECDH derive.

    Attributes:
        named_curve: Кривая (только "P-256")
        public: Публичный ключ второй стороны. На стороне фасада это
            CryptoKey, при передаче в Provider заменяется на ProviderKey.
    """

    public: Any
    named_curve: str = P256
    name: str = ECDH


@dataclass(frozen=True)
class HkdfDeriveParams:
    """
    Параметры HKDF derive.

    Bare "HKDF" соответствует hash=SHA-256, пустым salt и info.
    """

    hash: str = DEFAULT_HKDF_HASH
    salt: bytes = b""
    info: bytes = b""
    name: str = HKDF


DeriveParams = Union[EcdhDeriveParams, HkdfDeriveParams]


@dataclass(frozen=True)
class AesDerivedKeyAlgorithm:
    """Цель вывода: AES-GCM ключ длиной length бит."""

    length: Union[int, float]
    name: str = AES_GCM

    def to_descriptor(self) -> Dict[str, Any]:
        """Представление для атрибута CryptoKey.algorithm."""
        return {"name": self.name, "length": self.length}


# ==============================================================================
# CIPHER PARAMETERS
# ==============================================================================


@dataclass(frozen=True)
class AesGcmParams:
    """
    Параметры AES-GCM encrypt/decrypt.

    Attributes:
        iv: Нормализованный IV
        tag_length: Длина тега в битах (128 если не указан или NaN).
            Диапазон проверяет Provider.
    """

    iv: bytes
    tag_length: Union[int, float] = DEFAULT_TAG_LENGTH
    name: str = AES_GCM


def collapse_descriptor(algorithm: Descriptor) -> Union[str, Dict[str, Any]]:
    """
    Свернуть {name: X} в bare строку X.

    Дескриптор с единственным ключом "name" хранится в CryptoKey как строка,
    чтобы короткая и длинная формы сравнивались одинаково. Остальные
    дескрипторы копируются в обычный dict.

    Example:
        >>> collapse_descriptor({"name": "AES-GCM"})
        'AES-GCM'
        >>> collapse_descriptor({"name": "ECDH", "namedCurve": "P-256"})
        {'name': 'ECDH', 'namedCurve': 'P-256'}
    """
    if isinstance(algorithm, str):
        return algorithm
    if list(algorithm.keys()) == ["name"]:
        return str(algorithm["name"])
    return dict(algorithm)


__all__ = [
    "ECDH",
    "AES_GCM",
    "HKDF",
    "P256",
    "DIGEST_ALGORITHMS",
    "IMPORT_FORMATS",
    "EXPORT_FORMATS",
    "IMPORT_ALGORITHM_NAMES",
    "IMPORT_DESCRIPTOR_NAMES",
    "DERIVE_ALGORITHM_NAMES",
    "ECDH_KEY_FIELDS",
    "AES_KEY_FIELDS",
    "DERIVE_FIELDS",
    "DERIVED_KEY_FIELDS",
    "AES_GCM_PARAM_FIELDS",
    "DEFAULT_TAG_LENGTH",
    "DEFAULT_HKDF_HASH",
    "KEY_TYPES",
    "Descriptor",
    "EcdhKeyAlgorithm",
    "AesGcmKeyAlgorithm",
    "HkdfKeyAlgorithm",
    "KeyAlgorithm",
    "EcdhDeriveParams",
    "HkdfDeriveParams",
    "DeriveParams",
    "AesDerivedKeyAlgorithm",
    "AesGcmParams",
    "collapse_descriptor",
]
