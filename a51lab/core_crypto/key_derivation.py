"""
Passphrase Key Derivation

Turns a human passphrase into A5/1 key or frame-number bits with
PBKDF2-HMAC-SHA256, and fingerprints bit strings with SHA-256 so they can
be referenced in logs without revealing them.

Uses the `cryptography` library primitives.
"""

from typing import List, Sequence

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.backends import default_backend

from .a51_cipher import CANONICAL_FRAME_LENGTH, CANONICAL_KEY_LENGTH
from .codec import bits_to_str
from .errors import EmptyInput


# PBKDF2 configuration
PBKDF2_ITERATIONS = 100_000
PBKDF2_ALGORITHM = hashes.SHA256()

FINGERPRINT_LENGTH = 16     # Hex characters kept from the SHA-256 digest


def derive_bits(passphrase: str, salt: bytes, length: int,
                iterations: int = PBKDF2_ITERATIONS) -> List[int]:
    """
    Derive `length` bits from a passphrase.

    Args:
        passphrase: User passphrase
        salt: PBKDF2 salt
        length: Number of bits wanted
        iterations: PBKDF2 iteration count

    Returns:
        Bits of the derived key, MSB of each byte first

    Raises:
        EmptyInput: If the passphrase is empty
    """
    if not passphrase:
        raise EmptyInput("Passphrase cannot be empty")
    if length < 1:
        raise ValueError("Bit length must be positive")

    kdf = PBKDF2HMAC(
        algorithm=PBKDF2_ALGORITHM,
        length=(length + 7) // 8,
        salt=salt,
        iterations=iterations,
        backend=default_backend()
    )
    derived = kdf.derive(passphrase.encode('utf-8'))

    bits = []
    for byte in derived:
        for shift in range(7, -1, -1):
            bits.append((byte >> shift) & 1)
    return bits[:length]


def derive_key_bits(passphrase: str, salt: bytes,
                    length: int = CANONICAL_KEY_LENGTH,
                    iterations: int = PBKDF2_ITERATIONS) -> List[int]:
    """Derive a session key (64 bits by default)."""
    return derive_bits(passphrase, salt, length, iterations)


def derive_frame_bits(passphrase: str, salt: bytes,
                      length: int = CANONICAL_FRAME_LENGTH,
                      iterations: int = PBKDF2_ITERATIONS) -> List[int]:
    """Derive a frame number (22 bits by default)."""
    return derive_bits(passphrase, salt, length, iterations)


def key_fingerprint(bits: Sequence[int]) -> str:
    """Short SHA-256 hex digest of a bit sequence."""
    digest = hashes.Hash(hashes.SHA256(), backend=default_backend())
    digest.update(bits_to_str(bits).encode('ascii'))
    return digest.finalize().hex()[:FINGERPRINT_LENGTH]
