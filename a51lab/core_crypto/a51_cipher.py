"""
A5/1 Stream Cipher Engine

Implements the A5/1 keystream generator used to encrypt GSM bursts:

- Three LFSRs (19, 22 and 23 bits) with stop/go majority clocking
- Initialization: zeroing, key mixing, frame-number mixing, discard clocks
- Keystream generation one bit per majority clock cycle

The initialization protocol is a single state machine. It can be driven
one step at a time or run to completion with run_all(); both paths use
the same transition methods and reach identical register contents.

Security Note:
    A5/1 is known to be broken (time-memory tradeoff attacks recover the
    session key in seconds). This is for EDUCATIONAL/DEMONSTRATION purposes
    only - NOT for protecting real data!
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Generator, List, Sequence, Tuple

from .errors import EmptyInput, InvalidPhaseTransition, PhaseOverrun
from .lfsr import Register, check_bit, standard_registers


# ============================================================================
# Constants
# ============================================================================

CANONICAL_KEY_LENGTH = 64       # Kc
CANONICAL_FRAME_LENGTH = 22     # TDMA frame number
DEFAULT_DISCARD_CLOCKS = 100    # Majority clocks before keystream output


# ============================================================================
# Clock Controller
# ============================================================================

def majority(c1: int, c2: int, c3: int) -> int:
    """Return the bit value held by at least two of the three inputs."""
    return 1 if c1 + c2 + c3 >= 2 else 0


@dataclass(frozen=True)
class ClockDecision:
    """Outcome of one majority clock cycle."""
    clock_bits: Tuple[int, int, int]
    majority: int
    clocked: FrozenSet[str]


class ClockController:
    """
    Stop/go clocking by majority vote.

    A register advances only when its clocking bit agrees with the
    majority, so two or three registers move on every cycle.
    """

    @staticmethod
    def decide_and_clock(registers: Sequence[Register]) -> ClockDecision:
        """
        Run one majority clock cycle over three registers.

        Args:
            registers: The X, Y and Z registers

        Returns:
            ClockDecision with the clocking bits read before the cycle,
            the majority value and the names of the registers that advanced
        """
        if len(registers) != 3:
            raise ValueError("Majority clocking needs exactly three registers")

        clock_bits = tuple(reg.clock_bit() for reg in registers)
        maj = majority(*clock_bits)

        clocked = []
        for reg, bit in zip(registers, clock_bits):
            if bit == maj:
                reg.clock()
                clocked.append(reg.name)

        return ClockDecision(clock_bits=clock_bits, majority=maj, clocked=frozenset(clocked))


# ============================================================================
# Cipher State
# ============================================================================

class Phase(Enum):
    """Initialization phases, in protocol order."""
    NOT_STARTED = 0
    ZEROED = 1
    KEY_MIXING = 2
    FRAME_MIXING = 3
    DISCARD_CLOCKING = 4
    READY = 5


@dataclass
class CipherState:
    """
    The three registers plus initialization progress.

    Keystream generation is only valid in Phase.READY.
    """
    registers: Tuple[Register, Register, Register] = field(default_factory=standard_registers)
    phase: Phase = Phase.NOT_STARTED
    progress: int = 0
    exhausted: bool = False

    @property
    def x(self) -> Register:
        return self.registers[0]

    @property
    def y(self) -> Register:
        return self.registers[1]

    @property
    def z(self) -> Register:
        return self.registers[2]

    @property
    def is_ready(self) -> bool:
        return self.phase is Phase.READY

    def snapshot(self) -> Tuple[str, str, str]:
        """Register contents as bit strings."""
        return tuple(str(reg) for reg in self.registers)

    def enter_phase(self, phase: Phase) -> None:
        """Move to a phase and restart the within-phase counter."""
        self.phase = phase
        self.progress = 0


# ============================================================================
# Initialization Sequencer
# ============================================================================

class InitializationSequencer:
    """
    Drives a CipherState through
    NOT_STARTED -> ZEROED -> KEY_MIXING -> FRAME_MIXING -> DISCARD_CLOCKING -> READY.

    Every mixing or clocking call checks the phase first. A call arriving
    before its phase raises InvalidPhaseTransition; a call arriving after
    its phase already completed raises PhaseOverrun.

    Example:
        >>> state = CipherState()
        >>> seq = InitializationSequencer(state, key_length=2, frame_length=1)
        >>> seq.run_all([1, 0], [1])
        >>> state.phase
        <Phase.READY: 5>
    """

    def __init__(
        self,
        state: CipherState,
        key_length: int = CANONICAL_KEY_LENGTH,
        frame_length: int = CANONICAL_FRAME_LENGTH,
        discard_clocks: int = DEFAULT_DISCARD_CLOCKS
    ):
        """
        Args:
            state: Cipher state to drive (owned by the caller)
            key_length: Number of key bits mix_key_bit() will accept
            frame_length: Number of frame bits mix_frame_bit() will accept
            discard_clocks: Majority clocks before READY (A5/1 uses 100)

        Raises:
            EmptyInput: If key_length or frame_length is not positive
            ValueError: If discard_clocks is negative
        """
        self._state = state
        self._configure(key_length, frame_length)
        if discard_clocks < 0:
            raise ValueError("Discard clock count must be non-negative")
        self._discard_clocks = discard_clocks

    def _configure(self, key_length: int, frame_length: int) -> None:
        if key_length < 1:
            raise EmptyInput("Key must contain at least one bit")
        if frame_length < 1:
            raise EmptyInput("Frame number must contain at least one bit")
        self._key_length = key_length
        self._frame_length = frame_length

    @property
    def state(self) -> CipherState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def key_length(self) -> int:
        return self._key_length

    @property
    def frame_length(self) -> int:
        return self._frame_length

    @property
    def discard_clocks(self) -> int:
        return self._discard_clocks

    @property
    def remaining(self) -> int:
        """Calls still expected in the current phase."""
        phase = self._state.phase
        if phase in (Phase.ZEROED, Phase.KEY_MIXING):
            return self._key_length - self._state.progress
        if phase is Phase.FRAME_MIXING:
            return self._frame_length - self._state.progress
        if phase is Phase.DISCARD_CLOCKING:
            return self._discard_clocks - self._state.progress
        return 0

    def require_phase(self, operation: str, *accepted: Phase) -> None:
        """
        Raise unless the state is in one of the accepted phases.

        Raises:
            InvalidPhaseTransition: If the state has not reached them yet
            PhaseOverrun: If the state is already past them
        """
        phase = self._state.phase
        if phase in accepted:
            return
        if phase.value > max(p.value for p in accepted):
            raise PhaseOverrun(f"{operation}: phase already complete (now {phase.name})")
        raise InvalidPhaseTransition(f"{operation} not allowed in phase {phase.name}")

    def zero(self) -> None:
        """Clear all three registers and start a new initialization episode."""
        for reg in self._state.registers:
            reg.zero()
        self._state.exhausted = False
        self._state.enter_phase(Phase.ZEROED)

    def mix_key_bit(self, bit: int) -> None:
        """Clock all three registers with one key bit XORed into the feedback."""
        self.require_phase("mix_key_bit", Phase.ZEROED, Phase.KEY_MIXING)
        check_bit(bit)
        if self._state.phase is Phase.ZEROED:
            self._state.enter_phase(Phase.KEY_MIXING)

        for reg in self._state.registers:
            reg.clock(bit)
        self._state.progress += 1

        if self._state.progress >= self._key_length:
            self._state.enter_phase(Phase.FRAME_MIXING)

    def mix_frame_bit(self, bit: int) -> None:
        """Clock all three registers with one frame-number bit."""
        self.require_phase("mix_frame_bit", Phase.FRAME_MIXING)
        check_bit(bit)

        for reg in self._state.registers:
            reg.clock(bit)
        self._state.progress += 1

        if self._state.progress >= self._frame_length:
            self._finish_frame_mixing()

    def _finish_frame_mixing(self) -> None:
        if self._discard_clocks == 0:
            self._state.enter_phase(Phase.READY)
        else:
            self._state.enter_phase(Phase.DISCARD_CLOCKING)

    def discard_clock(self) -> ClockDecision:
        """
        Perform one majority clock cycle whose output is thrown away.

        Returns:
            The clock decision for this cycle
        """
        self.require_phase("discard_clock", Phase.DISCARD_CLOCKING)

        decision = ClockController.decide_and_clock(self._state.registers)
        self._state.progress += 1

        if self._state.progress >= self._discard_clocks:
            self._state.enter_phase(Phase.READY)
        return decision

    def run_all(self, key: Sequence[int], frame: Sequence[int]) -> None:
        """
        Run the full initialization in one call.

        Key and frame lengths are taken from the arguments. The result is
        identical to calling zero(), mix_key_bit(), mix_frame_bit() and
        discard_clock() by hand.
        """
        self._configure(len(key), len(frame))
        self.zero()
        for bit in key:
            self.mix_key_bit(bit)
        for bit in frame:
            self.mix_frame_bit(bit)
        while self._state.phase is Phase.DISCARD_CLOCKING:
            self.discard_clock()


# ============================================================================
# Keystream Generator
# ============================================================================

@dataclass(frozen=True)
class KeystreamStep:
    """One keystream bit with the cycle that produced it."""
    bit: int
    decision: ClockDecision
    outputs: Tuple[int, int, int]


class KeystreamGenerator:
    """
    Lazy keystream over a READY cipher state.

    Each call mutates the registers; there is no rewind. Start over by
    re-initializing the state.
    """

    def __init__(self, state: CipherState):
        self._state = state

    def step(self) -> KeystreamStep:
        """
        Clock once by majority and combine the post-clock output bits.

        Raises:
            InvalidPhaseTransition: If the state is not READY
        """
        if not self._state.is_ready:
            raise InvalidPhaseTransition(
                f"Keystream requested in phase {self._state.phase.name}"
            )

        decision = ClockController.decide_and_clock(self._state.registers)
        outputs = tuple(reg.output_bit() for reg in self._state.registers)
        bit = outputs[0] ^ outputs[1] ^ outputs[2]
        return KeystreamStep(bit=bit, decision=decision, outputs=outputs)

    def next_bit(self) -> int:
        return self.step().bit

    def bits(self) -> Generator[int, None, None]:
        """Unbounded generator of keystream bits."""
        while True:
            yield self.next_bit()


def generate_keystream(
    key: Sequence[int],
    frame: Sequence[int],
    length: int,
    discard_clocks: int = DEFAULT_DISCARD_CLOCKS
) -> List[int]:
    """
    Generate a keystream from scratch.

    Args:
        key: Key bits
        frame: Frame-number bits
        length: Number of keystream bits
        discard_clocks: Majority clocks before output starts

    Returns:
        List of keystream bits
    """
    state = CipherState()
    InitializationSequencer(state, len(key), len(frame), discard_clocks).run_all(key, frame)
    generator = KeystreamGenerator(state)
    return [generator.next_bit() for _ in range(length)]
