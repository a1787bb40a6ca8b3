"""
a51lab - Main Entry Point

Usage:
  a51lab encrypt [--key BITS | --passphrase P [--salt S]] [--frame BITS] [--text T]
                 [--lenient] [--discard-clocks N] [--trace]
  a51lab decrypt --key BITS --frame BITS --hex HEX [--lenient] [--discard-clocks N]

Defaults reproduce the demo vector (alternating 01 key, frame
1100110011001100110011, plaintext "HELLO").
"""

import argparse
import sys

from .core_crypto.codec import bits_to_str, hex_to_bits
from .core_crypto.errors import A51Error
from .core_crypto.key_derivation import derive_key_bits
from .integration.event_logger import EventLogger
from .session.session import (
    DEFAULT_FRAME, DEFAULT_KEY, DEFAULT_PLAINTEXT,
    Session, SessionConfig, decrypt_bits
)


DEFAULT_SALT = "a51lab"


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="a51lab", description="A5/1 stream cipher (educational).")
    sub = p.add_subparsers(dest="cmd", required=True)

    enc = sub.add_parser("encrypt", help="Encrypt text and show keystream, ciphertext and hex.")
    key_group = enc.add_mutually_exclusive_group()
    key_group.add_argument("-k", "--key", help="Key as binary digits (default: alternating 01)", default=None)
    key_group.add_argument("-p", "--passphrase", help="Derive the key from a passphrase (PBKDF2)", default=None)
    enc.add_argument("--salt", help=f"Salt for --passphrase (default '{DEFAULT_SALT}')", default=DEFAULT_SALT)
    enc.add_argument("-f", "--frame", help="Frame number as binary digits", default=DEFAULT_FRAME)
    enc.add_argument("-t", "--text", help=f"Plaintext (default '{DEFAULT_PLAINTEXT}')", default=DEFAULT_PLAINTEXT)
    enc.add_argument("--trace", help="Print every engine step", action="store_true")

    dec = sub.add_parser("decrypt", help="Decrypt a hex ciphertext.")
    dec.add_argument("-k", "--key", help="Key as binary digits", required=True)
    dec.add_argument("-f", "--frame", help="Frame number as binary digits", required=True)
    dec.add_argument("-x", "--hex", help="Ciphertext in hex", required=True)

    for cmd in (enc, dec):
        cmd.add_argument("--lenient", help="Accept key/frame of any positive length", action="store_true")
        cmd.add_argument("-d", "--discard-clocks", help="Majority clocks before output (default 100)",
                         type=int, default=100)
    return p


def _config(args) -> SessionConfig:
    return SessionConfig(strict=not args.lenient, discard_clocks=args.discard_clocks)


def cmd_encrypt(args) -> None:
    if args.passphrase is not None:
        key = derive_key_bits(args.passphrase, args.salt.encode('utf-8'))
    else:
        key = args.key if args.key is not None else DEFAULT_KEY

    logger = EventLogger() if args.trace else None
    session = Session(key, args.frame, args.text, _config(args), event_logger=logger)
    session.initialize()
    session.run_all()

    if logger is not None:
        print(logger.format_log())
        print()
    print(f"Key:              {bits_to_str(session.key_bits)}")
    print(f"Frame:            {bits_to_str(session.frame_bits)}")
    print(f"Plaintext bits:   {bits_to_str(session.plaintext_bits)}")
    print(f"Keystream:        {bits_to_str(session.keystream)}")
    print(f"Ciphertext bits:  {bits_to_str(session.ciphertext)}")
    print(f"Ciphertext (hex): {session.ciphertext_hex()}")
    print(f"Decrypted text:   {session.decrypted_text()}")


def cmd_decrypt(args) -> None:
    text = decrypt_bits(args.key, args.frame, hex_to_bits(args.hex), _config(args))
    print(text)


def main(argv=None) -> int:
    parser = build_argparser()
    args = parser.parse_args(argv)
    try:
        if args.cmd == "encrypt":
            cmd_encrypt(args)
        elif args.cmd == "decrypt":
            cmd_decrypt(args)
    except (A51Error, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
