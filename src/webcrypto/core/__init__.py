"""Core types of the WebCrypto facade: exceptions, descriptors, Provider protocols."""

from src.webcrypto.core.descriptors import (
    AesDerivedKeyAlgorithm,
    AesGcmKeyAlgorithm,
    AesGcmParams,
    EcdhDeriveParams,
    EcdhKeyAlgorithm,
    HkdfDeriveParams,
    HkdfKeyAlgorithm,
    collapse_descriptor,
)
from src.webcrypto.core.exceptions import (
    AlgorithmMismatchError,
    ArgumentCountError,
    InsufficientRandomnessError,
    KeyHandleError,
    ProviderError,
    ProviderResultError,
    ValidationError,
    WebCryptoError,
)
from src.webcrypto.core.protocols import CompletionProtocol, ProviderKey, ProviderProtocol

__all__ = [
    "AesDerivedKeyAlgorithm",
    "AesGcmKeyAlgorithm",
    "AesGcmParams",
    "EcdhDeriveParams",
    "EcdhKeyAlgorithm",
    "HkdfDeriveParams",
    "HkdfKeyAlgorithm",
    "collapse_descriptor",
    "AlgorithmMismatchError",
    "ArgumentCountError",
    "InsufficientRandomnessError",
    "KeyHandleError",
    "ProviderError",
    "ProviderResultError",
    "ValidationError",
    "WebCryptoError",
    "CompletionProtocol",
    "ProviderKey",
    "ProviderProtocol",
]
