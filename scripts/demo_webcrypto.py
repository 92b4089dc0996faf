#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Demo script for the WebCrypto facade.

Walks through random values, digests, ECDH key agreement, HKDF and an
AES-GCM round trip using the software provider.

Usage:
    python scripts/demo_webcrypto.py
"""

from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from src.webcrypto import Crypto, ProviderError, create_crypto  # noqa: E402

ECDH_P256 = {"name": "ECDH", "namedCurve": "P-256"}


def print_banner(text: str) -> None:
    """Print section banner."""
    print()
    print("=" * 70)
    print(f"  {text}")
    print("=" * 70)


def print_success(text: str) -> None:
    """Print success message."""
    print(f"✅ {text}")


def print_info(text: str) -> None:
    """Print info message."""
    print(f"ℹ️  {text}")


def print_data(label: str, data: bytes, max_len: int = 64) -> None:
    """Print data preview."""
    hex_data = data.hex()
    if len(hex_data) > max_len:
        preview = f"{hex_data[:max_len]}... ({len(data)} bytes)"
    else:
        preview = f"{hex_data} ({len(data)} bytes)"
    print(f"   {label}: {preview}")


def demo_random(crypto: Crypto) -> None:
    """Demonstrate getRandomValues."""
    print_banner("🎲 Demo: getRandomValues")

    buffer = crypto.get_random_values(bytearray(16))
    print_data("Random", bytes(buffer))
    print_success("Buffer filled in place")


async def demo_digest(crypto: Crypto) -> None:
    """Demonstrate digest."""
    print_banner("🔎 Demo: digest")

    for name in ("SHA-1", "SHA-256", "SHA-384", "SHA-512"):
        print_data(name, await crypto.subtle.digest(name, b"hello"))


async def demo_key_agreement(crypto: Crypto) -> None:
    """Demonstrate ECDH agreement followed by AES-GCM."""
    print_banner("🤝 Demo: ECDH P-256 -> AES-GCM")

    print()
    print("Step 1: Generating key pairs for Alice and Bob...")
    alice = await crypto.subtle.generate_key(ECDH_P256, False, ["deriveKey"])
    bob = await crypto.subtle.generate_key(ECDH_P256, False, ["deriveKey"])
    print_data("Alice public", await crypto.subtle.export_key("raw", alice["publicKey"]))
    print_data("Bob public", await crypto.subtle.export_key("raw", bob["publicKey"]))

    print()
    print("Step 2: Deriving AES-256-GCM keys on both sides...")
    aes = {"name": "AES-GCM", "length": 256}
    alice_key = await crypto.subtle.derive_key(
        {**ECDH_P256, "public": bob["publicKey"]}, alice["privateKey"], aes, False, ["encrypt"]
    )
    bob_key = await crypto.subtle.derive_key(
        {**ECDH_P256, "public": alice["publicKey"]}, bob["privateKey"], aes, False, ["decrypt"]
    )
    print_info(f"Derived key: {alice_key!r}")

    print()
    print("Step 3: Encrypting with Alice's key, decrypting with Bob's...")
    iv = crypto.get_random_values(bytearray(12))
    params = {"name": "AES-GCM", "iv": iv}
    ciphertext = await crypto.subtle.encrypt(params, alice_key, b"Hello, Bob!")
    print_data("Ciphertext", ciphertext)
    plaintext = await crypto.subtle.decrypt(params, bob_key, ciphertext)
    print_success(f"Decrypted: {plaintext.decode()}")

    print()
    print("Step 4: Tampering with the ciphertext...")
    tampered = bytearray(ciphertext)
    tampered[0] ^= 0x01
    try:
        await crypto.subtle.decrypt(params, bob_key, tampered)
    except ProviderError as e:
        print_success(f"Rejected: {e.message}")


async def demo_hkdf(crypto: Crypto) -> None:
    """Demonstrate HKDF deriveBits."""
    print_banner("🧪 Demo: HKDF deriveBits")

    ikm = crypto.get_random_values(bytearray(32))
    base = await crypto.subtle.import_key("raw", ikm, "HKDF", False, ["deriveBits"])
    params = {"name": "HKDF", "hash": "SHA-256", "salt": b"demo-salt", "info": b"demo"}

    start = time.time()
    bits = await crypto.subtle.derive_bits(params, base, 256)
    elapsed = (time.time() - start) * 1000

    print_data("Derived", bits)
    print_info(f"deriveBits took {elapsed:.2f} ms")


async def run_demos(crypto: Crypto) -> None:
    demo_random(crypto)
    await demo_digest(crypto)
    await demo_key_agreement(crypto)
    await demo_hkdf(crypto)


def main() -> None:
    """Main demo function."""
    print()
    print("╔════════════════════════════════════════════════════════════════════╗")
    print("║                                                                    ║")
    print("║              🔐 WEBCRYPTO FACADE DEMONSTRATION 🔐                  ║")
    print("║                                                                    ║")
    print("╚════════════════════════════════════════════════════════════════════╝")

    try:
        with create_crypto() as crypto:
            asyncio.run(run_demos(crypto))

        print()
        print_banner("🎉 All Demos Completed Successfully!")
        print()

    except KeyboardInterrupt:
        print()
        print("❌ Demo interrupted by user")
        sys.exit(1)
    except Exception as e:
        print()
        print(f"❌ Error: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
