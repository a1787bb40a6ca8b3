# Core Cryptography Module
"""
Core A5/1 implementations including:
- LFSR registers
- Majority clocking, initialization and keystream generation
- Bit/text/hex codec
- Passphrase key derivation
"""
