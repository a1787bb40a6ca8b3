"""
Bit Codec

Conversions between text, bit lists, 0/1 strings and hex, plus the XOR
used for both encryption and decryption.

Bits are Python ints (0 or 1) in lists, most-significant bit first.
"""

from typing import List, Sequence

from .errors import MalformedBitstream, UnencodableText
from .lfsr import check_bit


BITS_PER_CHAR = 8
BITS_PER_NIBBLE = 4


def text_to_bits(text: str) -> List[int]:
    """
    Encode each character as 8 bits, big-endian, in input order.

    Raises:
        UnencodableText: If a character's code point is above 255
    """
    bits = []
    for char in text:
        code = ord(char)
        if code > 0xFF:
            raise UnencodableText(f"Character {char!r} does not fit in 8 bits")
        for shift in range(BITS_PER_CHAR - 1, -1, -1):
            bits.append((code >> shift) & 1)
    return bits


def bits_to_text(bits: Sequence[int]) -> str:
    """
    Decode 8-bit groups back into characters.

    Raises:
        MalformedBitstream: If the length is not a multiple of 8
    """
    if len(bits) % BITS_PER_CHAR:
        raise MalformedBitstream(
            f"Bit length {len(bits)} is not a multiple of {BITS_PER_CHAR}"
        )
    chars = []
    for i in range(0, len(bits), BITS_PER_CHAR):
        code = 0
        for bit in bits[i:i + BITS_PER_CHAR]:
            code = (code << 1) | check_bit(bit)
        chars.append(chr(code))
    return ''.join(chars)


def bits_to_hex(bits: Sequence[int]) -> str:
    """
    Render bits as upper-case hex, one digit per 4-bit nibble.

    A trailing partial nibble is rejected rather than mis-rendered.

    Raises:
        MalformedBitstream: If the length is not a multiple of 4
    """
    if len(bits) % BITS_PER_NIBBLE:
        raise MalformedBitstream(
            f"Bit length {len(bits)} is not a multiple of {BITS_PER_NIBBLE}"
        )
    digits = []
    for i in range(0, len(bits), BITS_PER_NIBBLE):
        nibble = 0
        for bit in bits[i:i + BITS_PER_NIBBLE]:
            nibble = (nibble << 1) | check_bit(bit)
        digits.append(f"{nibble:X}")
    return ''.join(digits)


def hex_to_bits(hex_str: str) -> List[int]:
    """Inverse of bits_to_hex (case-insensitive)."""
    bits = []
    for digit in hex_str:
        try:
            nibble = int(digit, 16)
        except ValueError:
            raise MalformedBitstream(f"Invalid hex digit {digit!r}") from None
        for shift in range(BITS_PER_NIBBLE - 1, -1, -1):
            bits.append((nibble >> shift) & 1)
    return bits


def parse_bits(bit_str: str) -> List[int]:
    """
    Parse a string of '0'/'1' characters.

    Raises:
        MalformedBitstream: On any other character
    """
    bits = []
    for index, char in enumerate(bit_str):
        if char not in '01':
            raise MalformedBitstream(f"Invalid bit {char!r} at position {index}")
        bits.append(int(char))
    return bits


def bits_to_str(bits: Sequence[int]) -> str:
    return ''.join(str(check_bit(b)) for b in bits)


def xor_apply(data_bit: int, keystream_bit: int) -> int:
    """XOR one data bit with one keystream bit (encrypts and decrypts)."""
    return check_bit(data_bit) ^ check_bit(keystream_bit)


def xor_bits(data: Sequence[int], keystream: Sequence[int]) -> List[int]:
    """
    XOR a bit sequence with a keystream.

    Args:
        data: Plaintext or ciphertext bits
        keystream: Keystream bits (must be at least as long as data)

    Returns:
        XOR result, same length as data
    """
    if len(keystream) < len(data):
        raise ValueError("Keystream must be at least as long as data")
    return [xor_apply(d, k) for d, k in zip(data, keystream)]
