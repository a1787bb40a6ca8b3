"""
Encryption Session

A session owns one CipherState for a given key, frame number and
plaintext, and encrypts the plaintext one bit per keystream step:

    keystream[i] = next keystream bit
    ciphertext[i] = plaintext[i] XOR keystream[i]

Invariant: len(keystream) == len(ciphertext) == cursor.

Initialization can be walked one step at a time (start_initialization,
next_key_bit, next_frame_bit, next_discard_clock) or done in one call
(initialize). Generation can likewise be stepped (next_step), iterated
cooperatively (steps) or drained (run_all).
"""

from dataclasses import dataclass
from typing import Generator, List, Optional, Sequence, Tuple, Union

from ..core_crypto.a51_cipher import (
    CANONICAL_FRAME_LENGTH, CANONICAL_KEY_LENGTH, DEFAULT_DISCARD_CLOCKS,
    CipherState, ClockDecision, InitializationSequencer, KeystreamGenerator, Phase
)
from ..core_crypto.codec import (
    bits_to_hex, bits_to_text, parse_bits, text_to_bits, xor_apply, xor_bits
)
from ..core_crypto.errors import (
    EmptyInput, InvalidPhaseTransition, MalformedBitstream, PhaseOverrun
)
from ..core_crypto.key_derivation import key_fingerprint
from ..core_crypto.lfsr import check_bit
from ..integration.event_logger import EventLogger, EventType


BitsLike = Union[str, Sequence[int]]

# Demo vector
DEFAULT_KEY = "01" * 32
DEFAULT_FRAME = "1100110011001100110011"
DEFAULT_PLAINTEXT = "HELLO"


@dataclass
class SessionConfig:
    """
    Session options.

    Attributes:
        strict: Require the canonical 64-bit key and 22-bit frame number.
            When False any positive length is accepted.
        discard_clocks: Majority clocks run before keystream output
    """
    strict: bool = True
    discard_clocks: int = DEFAULT_DISCARD_CLOCKS


@dataclass(frozen=True)
class StepResult:
    """One plaintext bit pushed through the cipher."""
    index: int
    plaintext_bit: int
    keystream_bit: int
    ciphertext_bit: int
    decision: ClockDecision


def _to_bits(value: BitsLike, label: str) -> List[int]:
    if isinstance(value, str):
        bits = parse_bits(value)
    else:
        bits = [check_bit(b) for b in value]
    if not bits:
        raise EmptyInput(f"{label} cannot be empty")
    return bits


def validate_key_material(key: BitsLike, frame: BitsLike,
                          strict: bool = True) -> Tuple[List[int], List[int]]:
    """
    Normalize and check key and frame-number bits.

    Args:
        key: Key as a 0/1 string or bit sequence
        frame: Frame number as a 0/1 string or bit sequence
        strict: Enforce the canonical 64/22 bit lengths

    Returns:
        (key_bits, frame_bits) as lists of ints

    Raises:
        EmptyInput: If either is empty
        MalformedBitstream: On non-binary content, or wrong length when strict
    """
    key_bits = _to_bits(key, "Key")
    frame_bits = _to_bits(frame, "Frame number")

    if strict:
        if len(key_bits) != CANONICAL_KEY_LENGTH:
            raise MalformedBitstream(f"Key must be {CANONICAL_KEY_LENGTH} binary digits")
        if len(frame_bits) != CANONICAL_FRAME_LENGTH:
            raise MalformedBitstream(f"Frame number must be {CANONICAL_FRAME_LENGTH} binary digits")

    return key_bits, frame_bits


class Session:
    """
    One key/frame/plaintext encryption run.

    Example:
        >>> session = Session(DEFAULT_KEY, DEFAULT_FRAME, "HELLO")
        >>> session.initialize()
        >>> session.run_all()
        >>> session.ciphertext_hex()
        'EE87423343'
    """

    def __init__(
        self,
        key: BitsLike,
        frame: BitsLike,
        plaintext: str,
        config: Optional[SessionConfig] = None,
        event_logger: Optional[EventLogger] = None
    ):
        """
        Create a session.

        Args:
            key: Key bits (0/1 string or sequence)
            frame: Frame-number bits (0/1 string or sequence)
            plaintext: Text to encrypt (8-bit characters)
            config: Session options (defaults to strict, 100 discard clocks)
            event_logger: Optional logger receiving one event per step

        Raises:
            EmptyInput: If key, frame or plaintext is empty
            MalformedBitstream: On bad key/frame bits
            UnencodableText: If plaintext has characters above code point 255
        """
        self._config = config or SessionConfig()
        self._key, self._frame = validate_key_material(key, frame, self._config.strict)
        if not plaintext:
            raise EmptyInput("Plaintext cannot be empty")
        self._plaintext = plaintext
        self._plaintext_bits = text_to_bits(plaintext)
        self._logger = event_logger

        self._log(
            EventType.SESSION_CREATED,
            key_length=len(self._key),
            key_id=key_fingerprint(self._key),
            frame_length=len(self._frame),
            frame_id=key_fingerprint(self._frame),
            plaintext_bits=len(self._plaintext_bits),
        )
        self._new_state()

    def _new_state(self) -> None:
        self._state = CipherState()
        self._sequencer = InitializationSequencer(
            self._state,
            key_length=len(self._key),
            frame_length=len(self._frame),
            discard_clocks=self._config.discard_clocks,
        )
        self._generator = KeystreamGenerator(self._state)
        self._keystream: List[int] = []
        self._ciphertext: List[int] = []

    def _log(self, event_type: EventType, **details) -> None:
        if self._logger is not None:
            self._logger.log(event_type, **details)

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def state(self) -> CipherState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def key_bits(self) -> List[int]:
        return list(self._key)

    @property
    def frame_bits(self) -> List[int]:
        return list(self._frame)

    @property
    def plaintext(self) -> str:
        return self._plaintext

    @property
    def plaintext_bits(self) -> List[int]:
        return list(self._plaintext_bits)

    @property
    def cursor(self) -> int:
        return len(self._ciphertext)

    @property
    def keystream(self) -> List[int]:
        return list(self._keystream)

    @property
    def ciphertext(self) -> List[int]:
        return list(self._ciphertext)

    @property
    def is_complete(self) -> bool:
        return self.cursor >= len(self._plaintext_bits)

    # ========================================================================
    # Initialization
    # ========================================================================

    def start_initialization(self) -> None:
        """Zero the registers; key bits can then be fed one at a time."""
        self._sequencer.zero()
        self._keystream = []
        self._ciphertext = []
        self._log(EventType.REGISTERS_ZEROED)

    def next_key_bit(self) -> int:
        """
        Mix the next key bit into the registers.

        Returns:
            The key bit that was mixed in
        """
        self._sequencer.require_phase("next_key_bit", Phase.ZEROED, Phase.KEY_MIXING)
        index = self._state.progress
        bit = self._key[index]
        self._sequencer.mix_key_bit(bit)

        self._log(EventType.KEY_BIT_MIXED, index=index + 1, total=len(self._key))
        if self._state.phase is not Phase.KEY_MIXING:
            self._log(EventType.KEY_MIXING_COMPLETE)
        return bit

    def next_frame_bit(self) -> int:
        """Mix the next frame-number bit into the registers."""
        self._sequencer.require_phase("next_frame_bit", Phase.FRAME_MIXING)
        index = self._state.progress
        bit = self._frame[index]
        self._sequencer.mix_frame_bit(bit)

        self._log(EventType.FRAME_BIT_MIXED, index=index + 1, total=len(self._frame))
        if self._state.phase is not Phase.FRAME_MIXING:
            self._log(EventType.FRAME_MIXING_COMPLETE)
            self._log_if_ready()
        return bit

    def next_discard_clock(self, count: int = 1) -> List[ClockDecision]:
        """
        Run `count` discard clocks.

        Raises:
            PhaseOverrun: If count exceeds the clocks left in the phase
                (nothing is clocked in that case)
        """
        if count < 1:
            raise ValueError("Discard clock count must be positive")
        if self._state.phase is Phase.DISCARD_CLOCKING and count > self._sequencer.remaining:
            raise PhaseOverrun(
                f"Requested {count} discard clocks, only {self._sequencer.remaining} remain"
            )

        decisions = []
        for _ in range(count):
            index = self._state.progress
            decision = self._sequencer.discard_clock()
            decisions.append(decision)
            self._log(
                EventType.DISCARD_CLOCK,
                index=index + 1,
                total=self._sequencer.discard_clocks,
                clock_bits=list(decision.clock_bits),
                majority=decision.majority,
                clocked=sorted(decision.clocked),
            )
        self._log_if_ready()
        return decisions

    def _log_if_ready(self) -> None:
        if self._state.is_ready:
            self._log(EventType.INITIALIZATION_COMPLETE, registers=list(self._state.snapshot()))

    def initialize(self) -> None:
        """Run the whole initialization in one call."""
        self.start_initialization()
        while self._state.phase in (Phase.ZEROED, Phase.KEY_MIXING):
            self.next_key_bit()
        while self._state.phase is Phase.FRAME_MIXING:
            self.next_frame_bit()
        while self._state.phase is Phase.DISCARD_CLOCKING:
            self.next_discard_clock()

    # ========================================================================
    # Keystream Generation
    # ========================================================================

    def next_step(self) -> StepResult:
        """
        Encrypt the next plaintext bit.

        Raises:
            InvalidPhaseTransition: If initialization is not complete
            PhaseOverrun: If every plaintext bit has already been processed
        """
        if not self._state.is_ready:
            raise InvalidPhaseTransition(
                f"Cipher not initialized (phase {self._state.phase.name})"
            )
        if self.is_complete:
            raise PhaseOverrun("All plaintext bits processed")

        index = self.cursor
        step = self._generator.step()
        plaintext_bit = self._plaintext_bits[index]
        ciphertext_bit = xor_apply(plaintext_bit, step.bit)
        self._keystream.append(step.bit)
        self._ciphertext.append(ciphertext_bit)

        self._log(
            EventType.KEYSTREAM_BIT,
            index=index + 1,
            majority=step.decision.majority,
            clocked=sorted(step.decision.clocked),
            outputs=list(step.outputs),
            keystream_bit=step.bit,
            plaintext_bit=plaintext_bit,
            ciphertext_bit=ciphertext_bit,
        )

        if self.is_complete:
            self._state.exhausted = True
            self._log(EventType.ENCRYPTION_COMPLETE, hex=self.ciphertext_hex())

        return StepResult(
            index=index,
            plaintext_bit=plaintext_bit,
            keystream_bit=step.bit,
            ciphertext_bit=ciphertext_bit,
            decision=step.decision,
        )

    def steps(self) -> Generator[StepResult, None, None]:
        """
        Yield one StepResult per remaining plaintext bit.

        Each step is complete before it is yielded, so the caller can do
        other work between steps or stop early.
        """
        while not self.is_complete:
            yield self.next_step()

    def run_all(self) -> None:
        """Generate every remaining keystream bit."""
        for _ in self.steps():
            pass

    # ========================================================================
    # Results
    # ========================================================================

    def _require_complete(self) -> None:
        if not self.is_complete or not self._state.is_ready:
            raise InvalidPhaseTransition("Encryption is not complete")

    def ciphertext_hex(self) -> str:
        self._require_complete()
        return bits_to_hex(self._ciphertext)

    def decrypted_text(self) -> str:
        """Re-apply the keystream to the ciphertext and decode it."""
        self._require_complete()
        return bits_to_text(xor_bits(self._ciphertext, self._keystream))

    def reset(self) -> None:
        """Discard all progress, keeping key, frame and plaintext."""
        self._new_state()
        self._log(EventType.SESSION_RESET)


# ============================================================================
# Convenience Functions
# ============================================================================

def encrypt_text(key: BitsLike, frame: BitsLike, text: str,
                 config: Optional[SessionConfig] = None) -> Session:
    """
    Encrypt text in one call.

    Returns:
        The completed session (keystream, ciphertext, hex available)
    """
    session = Session(key, frame, text, config)
    session.initialize()
    session.run_all()
    return session


def decrypt_bits(key: BitsLike, frame: BitsLike, ciphertext: Sequence[int],
                 config: Optional[SessionConfig] = None) -> str:
    """
    Decrypt ciphertext bits produced under the same key and frame number.

    Raises:
        EmptyInput: If ciphertext is empty
        MalformedBitstream: If ciphertext length is not a multiple of 8
    """
    if not ciphertext:
        raise EmptyInput("Ciphertext cannot be empty")
    config = config or SessionConfig()
    key_bits, frame_bits = validate_key_material(key, frame, config.strict)

    state = CipherState()
    InitializationSequencer(
        state, len(key_bits), len(frame_bits), config.discard_clocks
    ).run_all(key_bits, frame_bits)
    generator = KeystreamGenerator(state)
    keystream = [generator.next_bit() for _ in range(len(ciphertext))]
    return bits_to_text(xor_bits(ciphertext, keystream))
