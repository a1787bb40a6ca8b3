"""
A5/1 Linear Feedback Shift Registers

The three registers of A5/1 are plain binary LFSRs held as bit arrays:

- Index 0 is the newest (most-significant) end where feedback enters
- Tap positions are 0-indexed from that end
- Each register has one clocking bit and one output bit

Security Note:
    A5/1 is broken. This implementation is for EDUCATIONAL/DEMONSTRATION
    purposes only.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .errors import MalformedBitstream


def check_bit(bit: int) -> int:
    """
    Validate a single bit.

    Raises:
        MalformedBitstream: If the value is not 0 or 1
    """
    if type(bit) is not int or bit not in (0, 1):
        raise MalformedBitstream(f"Bit must be 0 or 1, got {bit!r}")
    return bit


@dataclass(frozen=True)
class RegisterConfig:
    """
    Fixed geometry of one register.

    frozen=True keeps length and tap/clock/output indices immutable
    for the register's lifetime.
    """
    name: str
    length: int
    taps: Tuple[int, ...]
    clock_index: int
    output_index: int

    def __post_init__(self):
        if self.length < 1:
            raise ValueError("Register length must be positive")
        if not self.taps:
            raise ValueError("At least one tap position required")
        indices = list(self.taps) + [self.clock_index, self.output_index]
        if any(i < 0 or i >= self.length for i in indices):
            raise ValueError(
                f"Register {self.name}: indices must be between 0 and {self.length - 1}"
            )


# Standard A5/1 register geometry
REGISTER_X = RegisterConfig("X", 19, (18, 17, 16, 13), clock_index=8, output_index=18)
REGISTER_Y = RegisterConfig("Y", 22, (21, 20), clock_index=10, output_index=21)
REGISTER_Z = RegisterConfig("Z", 23, (22, 21, 20, 7), clock_index=10, output_index=22)

STANDARD_REGISTERS = (REGISTER_X, REGISTER_Y, REGISTER_Z)


class Register:
    """
    Fixed-length bit array with tap-based feedback.

    Example:
        >>> reg = Register(REGISTER_Y)
        >>> reg.clock(1)
        0
        >>> str(reg)[:4]
        '1000'
    """

    def __init__(self, config: RegisterConfig, bits: Optional[Sequence[int]] = None):
        """
        Create a register.

        Args:
            config: Register geometry
            bits: Optional initial contents (defaults to all zeros)

        Raises:
            ValueError: If bits does not have exactly config.length elements
            MalformedBitstream: If any element is not 0 or 1
        """
        self._config = config
        if bits is None:
            self._bits: List[int] = [0] * config.length
        else:
            if len(bits) != config.length:
                raise ValueError(
                    f"Register {config.name} needs {config.length} bits, got {len(bits)}"
                )
            self._bits = [check_bit(b) for b in bits]

    @property
    def config(self) -> RegisterConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def length(self) -> int:
        return self._config.length

    @property
    def bits(self) -> Tuple[int, ...]:
        """Snapshot of the current contents, index 0 first."""
        return tuple(self._bits)

    def zero(self) -> None:
        """Set every bit to 0."""
        self._bits = [0] * self._config.length

    def bit_at(self, index: int) -> int:
        if index < 0 or index >= self._config.length:
            raise ValueError(f"Index {index} out of range [0, {self._config.length - 1}]")
        return self._bits[index]

    def clock_bit(self) -> int:
        return self._bits[self._config.clock_index]

    def output_bit(self) -> int:
        return self._bits[self._config.output_index]

    def feedback_bit(self, extra_input: Optional[int] = None) -> int:
        """
        XOR of all tap bits, optionally XORed with an external bit.

        Does not modify the register.
        """
        feedback = 0
        for tap in self._config.taps:
            feedback ^= self._bits[tap]
        if extra_input is not None:
            feedback ^= check_bit(extra_input)
        return feedback

    def shift(self, new_bit: int) -> int:
        """
        Shift every bit one place toward the output end and insert new_bit at 0.

        Returns:
            The output bit as it was before the shift
        """
        check_bit(new_bit)
        old_output = self._bits[self._config.output_index]
        for i in range(self._config.length - 1, 0, -1):
            self._bits[i] = self._bits[i - 1]
        self._bits[0] = new_bit
        return old_output

    def clock(self, external_input: Optional[int] = None) -> int:
        """
        Advance the register by one step.

        Args:
            external_input: Key or frame bit mixed into the feedback, if any

        Returns:
            The pre-shift output bit
        """
        return self.shift(self.feedback_bit(external_input))

    def __str__(self) -> str:
        return ''.join(str(b) for b in self._bits)

    def __repr__(self) -> str:
        return f"Register(name={self.name!r}, length={self.length}, bits={str(self)})"


def standard_registers() -> Tuple[Register, Register, Register]:
    """Fresh, zeroed X, Y and Z registers."""
    return tuple(Register(config) for config in STANDARD_REGISTERS)
