"""
Unit tests for Core Crypto modules.

Tests:
- LFSR registers
- Majority clock controller
- Initialization sequencer
- Keystream generator
- Passphrase key derivation
"""

import itertools

import pytest
from a51lab.core_crypto.lfsr import (
    Register, RegisterConfig, REGISTER_X, REGISTER_Y, REGISTER_Z,
    STANDARD_REGISTERS, standard_registers
)
from a51lab.core_crypto.a51_cipher import (
    CipherState, ClockController, InitializationSequencer, KeystreamGenerator,
    Phase, majority, generate_keystream
)
from a51lab.core_crypto.codec import parse_bits, bits_to_str
from a51lab.core_crypto.errors import (
    EmptyInput, InvalidPhaseTransition, MalformedBitstream, PhaseOverrun
)
from a51lab.core_crypto.key_derivation import (
    derive_key_bits, derive_frame_bits, key_fingerprint, PBKDF2_ITERATIONS
)


# Demo vector, frozen from a reference run
KEY = parse_bits("01" * 32)
FRAME = parse_bits("1100110011001100110011")
AFTER_KEY = (
    "0000000101111000110",
    "0101010101010101010111",
    "10101010010010001000100",
)
AFTER_FRAME = (
    "0000110111111110111",
    "0011001100110011001111",
    "11101100100010111011101",
)
READY = (
    "0010001111100100100",
    "0000000000011001000000",
    "11110000110110000110011",
)
KEYSTREAM_40 = "1010011011000010000011100111111100001100"


def _initialized_state(discard_clocks=100):
    state = CipherState()
    InitializationSequencer(state, discard_clocks=discard_clocks).run_all(KEY, FRAME)
    return state


class TestRegister:
    """Unit tests for the LFSR register."""

    def test_standard_lengths(self):
        """X, Y and Z have lengths 19, 22 and 23."""
        x, y, z = standard_registers()
        assert (x.length, y.length, z.length) == (19, 22, 23)
        assert [r.name for r in (x, y, z)] == ["X", "Y", "Z"]

    def test_zero(self):
        """zero() clears every bit and keeps the length."""
        reg = Register(REGISTER_Z, [1] * 23)
        reg.zero()
        assert reg.bits == (0,) * 23
        assert len(reg.bits) == REGISTER_Z.length

    def test_feedback_xors_taps(self):
        """Feedback is the XOR of the tap bits."""
        bits = [0] * 19
        bits[13] = 1
        reg = Register(REGISTER_X, bits)
        assert reg.feedback_bit() == 1
        bits[18] = 1
        reg = Register(REGISTER_X, bits)
        assert reg.feedback_bit() == 0

    def test_feedback_with_extra_input(self):
        """External bit is XORed into the feedback without mutating."""
        bits = [0] * 19
        bits[13] = 1
        reg = Register(REGISTER_X, bits)
        assert reg.feedback_bit(1) == 0
        assert reg.feedback_bit(0) == 1
        assert list(reg.bits) == bits

    def test_shift_returns_pre_shift_output(self):
        """shift() returns the output bit seen before the shift."""
        bits = [0] * 19
        bits[18] = 1
        reg = Register(REGISTER_X, bits)
        assert reg.shift(1) == 1
        assert reg.output_bit() == 0
        assert reg.bit_at(0) == 1

    def test_shift_moves_toward_output(self):
        """Index i takes the old value of index i - 1."""
        reg = Register(REGISTER_Y, parse_bits("1011" + "0" * 18))
        reg.shift(0)
        assert str(reg) == "01011" + "0" * 17

    def test_clock_on_zero_register(self):
        """Clocking a zero register with an external 1 inserts a 1."""
        reg = Register(REGISTER_Y)
        assert reg.clock(1) == 0
        assert str(reg) == "1" + "0" * 21

    def test_length_invariant(self):
        """Length never changes over many clocks."""
        for config in STANDARD_REGISTERS:
            reg = Register(config)
            for i in range(100):
                reg.clock(i % 2)
                assert len(reg.bits) == config.length

    def test_clock_and_output_bits(self):
        """Accessors read the configured positions."""
        bits = [0] * 22
        bits[10] = 1
        reg = Register(REGISTER_Y, bits)
        assert reg.clock_bit() == 1
        assert reg.output_bit() == 0

    def test_bit_at_out_of_range(self):
        """Out of range index is rejected."""
        reg = Register(REGISTER_X)
        with pytest.raises(ValueError):
            reg.bit_at(19)
        with pytest.raises(ValueError):
            reg.bit_at(-1)

    def test_invalid_bits_rejected(self):
        """Non-binary bits are rejected."""
        with pytest.raises(MalformedBitstream):
            Register(REGISTER_X).shift(2)
        with pytest.raises(MalformedBitstream):
            Register(REGISTER_X).clock(-1)
        with pytest.raises(MalformedBitstream):
            Register(REGISTER_X, [2] * 19)
        with pytest.raises(MalformedBitstream):
            Register(REGISTER_X).shift(1.0)
        with pytest.raises(MalformedBitstream):
            Register(REGISTER_X).clock(0.0)

    def test_wrong_initial_length(self):
        """Initial contents must match the register length."""
        with pytest.raises(ValueError):
            Register(REGISTER_X, [0] * 18)

    def test_invalid_config(self):
        """Tap outside the register is rejected."""
        with pytest.raises(ValueError):
            RegisterConfig("W", 5, (5,), clock_index=0, output_index=4)
        with pytest.raises(ValueError):
            RegisterConfig("W", 5, (), clock_index=0, output_index=4)


class TestClockController:
    """Unit tests for majority clocking."""

    def test_majority_function(self):
        """Majority is the value appearing at least twice."""
        for c1, c2, c3 in itertools.product((0, 1), repeat=3):
            expected = 1 if [c1, c2, c3].count(1) >= 2 else 0
            assert majority(c1, c2, c3) == expected

    def test_clocks_exactly_the_agreeing_registers(self):
        """A register advances iff its clock bit equals the majority."""
        for clock_bits in itertools.product((0, 1), repeat=3):
            registers = []
            for config, cb in zip(STANDARD_REGISTERS, clock_bits):
                bits = [1 if i % 3 == 0 else 0 for i in range(config.length)]
                bits[config.clock_index] = cb
                registers.append(Register(config, bits))
            before = [r.bits for r in registers]

            decision = ClockController.decide_and_clock(registers)

            maj = majority(*clock_bits)
            assert decision.majority == maj
            assert decision.clock_bits == clock_bits
            assert 2 <= len(decision.clocked) <= 3
            for reg, cb, old in zip(registers, clock_bits, before):
                if cb == maj:
                    assert reg.name in decision.clocked
                    expected = Register(reg.config, old)
                    expected.clock()
                    assert reg.bits == expected.bits
                else:
                    assert reg.name not in decision.clocked
                    assert reg.bits == old

    def test_first_discard_clock_of_demo_vector(self):
        """After frame mixing the demo vector clocks X and Y first."""
        state = CipherState()
        seq = InitializationSequencer(state)
        seq.zero()
        for bit in KEY:
            seq.mix_key_bit(bit)
        for bit in FRAME:
            seq.mix_frame_bit(bit)
        decision = seq.discard_clock()
        assert decision.clock_bits == (1, 1, 0)
        assert decision.majority == 1
        assert decision.clocked == frozenset({"X", "Y"})

    def test_requires_three_registers(self):
        with pytest.raises(ValueError):
            ClockController.decide_and_clock(standard_registers()[:2])


class TestInitializationSequencer:
    """Unit tests for the initialization state machine."""

    def test_phase_progression(self):
        """Phases advance in protocol order."""
        state = CipherState()
        seq = InitializationSequencer(state, key_length=2, frame_length=2, discard_clocks=2)
        assert state.phase is Phase.NOT_STARTED

        seq.zero()
        assert state.phase is Phase.ZEROED
        seq.mix_key_bit(1)
        assert state.phase is Phase.KEY_MIXING
        seq.mix_key_bit(0)
        assert state.phase is Phase.FRAME_MIXING
        seq.mix_frame_bit(1)
        seq.mix_frame_bit(1)
        assert state.phase is Phase.DISCARD_CLOCKING
        seq.discard_clock()
        assert state.phase is Phase.DISCARD_CLOCKING
        seq.discard_clock()
        assert state.phase is Phase.READY

    def test_register_contents_after_each_phase(self):
        """Key and frame mixing match the frozen snapshots."""
        state = CipherState()
        seq = InitializationSequencer(state)
        seq.zero()
        for bit in KEY:
            seq.mix_key_bit(bit)
        assert state.snapshot() == AFTER_KEY
        for bit in FRAME:
            seq.mix_frame_bit(bit)
        assert state.snapshot() == AFTER_FRAME
        for _ in range(100):
            seq.discard_clock()
        assert state.snapshot() == READY
        assert state.is_ready

    def test_run_all_matches_stepwise(self):
        """run_all and stepwise driving give identical registers and keystream."""
        atomic = _initialized_state()

        stepped = CipherState()
        seq = InitializationSequencer(stepped)
        seq.zero()
        for bit in KEY:
            seq.mix_key_bit(bit)
        for bit in FRAME:
            seq.mix_frame_bit(bit)
        while stepped.phase is Phase.DISCARD_CLOCKING:
            seq.discard_clock()

        assert atomic.snapshot() == stepped.snapshot()
        gen_a = KeystreamGenerator(atomic)
        gen_b = KeystreamGenerator(stepped)
        assert [gen_a.next_bit() for _ in range(64)] == [gen_b.next_bit() for _ in range(64)]

    def test_zero_resets_from_ready(self):
        """zero() starts a fresh episode from any phase."""
        state = _initialized_state()
        seq = InitializationSequencer(state)
        seq.zero()
        assert state.phase is Phase.ZEROED
        assert all(set(reg.bits) == {0} for reg in state.registers)

    def test_remaining(self):
        state = CipherState()
        seq = InitializationSequencer(state, key_length=3, frame_length=2, discard_clocks=5)
        seq.zero()
        assert seq.remaining == 3
        seq.mix_key_bit(1)
        assert seq.remaining == 2
        seq.mix_key_bit(1)
        seq.mix_key_bit(1)
        assert seq.remaining == 2
        seq.mix_frame_bit(0)
        seq.mix_frame_bit(0)
        assert seq.remaining == 5

    def test_key_bit_before_zero(self):
        """Mixing before zeroing is a wrong-phase call."""
        seq = InitializationSequencer(CipherState())
        with pytest.raises(InvalidPhaseTransition):
            seq.mix_key_bit(1)

    def test_frame_bit_during_key_mixing(self):
        seq = InitializationSequencer(CipherState(), key_length=4)
        seq.zero()
        seq.mix_key_bit(1)
        with pytest.raises(InvalidPhaseTransition):
            seq.mix_frame_bit(1)
        with pytest.raises(InvalidPhaseTransition):
            seq.discard_clock()

    def test_extra_key_bit_is_overrun(self):
        """A key bit beyond key_length overruns the phase."""
        seq = InitializationSequencer(CipherState(), key_length=2)
        seq.zero()
        seq.mix_key_bit(1)
        seq.mix_key_bit(1)
        with pytest.raises(PhaseOverrun):
            seq.mix_key_bit(1)

    def test_extra_frame_bit_is_overrun(self):
        seq = InitializationSequencer(CipherState(), key_length=1, frame_length=1)
        seq.zero()
        seq.mix_key_bit(1)
        seq.mix_frame_bit(1)
        with pytest.raises(PhaseOverrun):
            seq.mix_frame_bit(0)

    def test_discard_clock_101_is_overrun(self):
        """The 101st discard clock is rejected."""
        state = _initialized_state()
        seq = InitializationSequencer(state)
        with pytest.raises(PhaseOverrun):
            seq.discard_clock()

    def test_no_discard_clocks(self):
        """With zero discard clocks frame mixing goes straight to READY."""
        state = CipherState()
        seq = InitializationSequencer(state, discard_clocks=0)
        seq.run_all(KEY, FRAME)
        assert state.is_ready
        assert state.snapshot() == AFTER_FRAME

    def test_negative_discard_clocks(self):
        with pytest.raises(ValueError):
            InitializationSequencer(CipherState(), discard_clocks=-1)

    def test_empty_key_or_frame(self):
        """Empty key or frame raise EmptyInput."""
        seq = InitializationSequencer(CipherState())
        with pytest.raises(EmptyInput):
            seq.run_all([], FRAME)
        with pytest.raises(EmptyInput):
            seq.run_all(KEY, [])
        with pytest.raises(EmptyInput):
            InitializationSequencer(CipherState(), key_length=0)

    def test_non_binary_key_bit(self):
        seq = InitializationSequencer(CipherState())
        seq.zero()
        with pytest.raises(MalformedBitstream):
            seq.mix_key_bit(3)
        # Rejected bit must not advance the phase
        assert seq.phase is Phase.ZEROED

    def test_float_key_bit(self):
        """A float equal to 1 is still not a key bit."""
        seq = InitializationSequencer(CipherState())
        seq.zero()
        with pytest.raises(MalformedBitstream):
            seq.mix_key_bit(1.0)
        assert seq.phase is Phase.ZEROED


class TestKeystreamGenerator:
    """Unit tests for keystream generation."""

    def test_demo_vector_keystream(self):
        """First 40 bits of the demo vector keystream."""
        gen = KeystreamGenerator(_initialized_state())
        bits = [gen.next_bit() for _ in range(40)]
        assert bits_to_str(bits) == KEYSTREAM_40

    def test_output_bits_read_after_clocking(self):
        """Keystream bit is the XOR of the post-clock output bits."""
        state = _initialized_state()
        gen = KeystreamGenerator(state)
        for _ in range(20):
            step = gen.step()
            outputs = tuple(reg.output_bit() for reg in state.registers)
            assert step.outputs == outputs
            assert step.bit == outputs[0] ^ outputs[1] ^ outputs[2]

    def test_not_ready(self):
        """Generation before READY is a wrong-phase call."""
        state = CipherState()
        with pytest.raises(InvalidPhaseTransition):
            KeystreamGenerator(state).next_bit()
        seq = InitializationSequencer(state)
        seq.zero()
        with pytest.raises(InvalidPhaseTransition):
            KeystreamGenerator(state).next_bit()

    def test_bits_generator(self):
        """bits() yields the same sequence lazily."""
        gen = KeystreamGenerator(_initialized_state())
        bits = list(itertools.islice(gen.bits(), 40))
        assert bits_to_str(bits) == KEYSTREAM_40

    def test_generate_keystream(self):
        assert bits_to_str(generate_keystream(KEY, FRAME, 40)) == KEYSTREAM_40

    def test_discard_clock_count_changes_keystream(self):
        """Skipping the discard clocks gives a different, fixed keystream."""
        bits = generate_keystream(KEY, FRAME, 40, discard_clocks=0)
        assert bits_to_str(bits) == "1010100110010010001001101011100010110010"

    def test_different_frame_different_keystream(self):
        other_frame = parse_bits("0011001100110011001100")
        assert generate_keystream(KEY, FRAME, 64) != generate_keystream(KEY, other_frame, 64)


class TestKeyDerivation:
    """Tests for passphrase key derivation."""

    def test_key_length(self):
        bits = derive_key_bits("passphrase", b"salt", iterations=1000)
        assert len(bits) == 64
        assert set(bits) <= {0, 1}

    def test_frame_length(self):
        assert len(derive_frame_bits("passphrase", b"salt", iterations=1000)) == 22

    def test_deterministic_with_same_salt(self):
        a = derive_key_bits("passphrase", b"salt", iterations=1000)
        b = derive_key_bits("passphrase", b"salt", iterations=1000)
        assert a == b

    def test_different_salt_different_key(self):
        a = derive_key_bits("passphrase", b"salt1", iterations=1000)
        b = derive_key_bits("passphrase", b"salt2", iterations=1000)
        assert a != b

    def test_empty_passphrase(self):
        with pytest.raises(EmptyInput):
            derive_key_bits("", b"salt")

    def test_iterations_count(self):
        assert PBKDF2_ITERATIONS >= 100000

    def test_fingerprint(self):
        """Fingerprints are short, stable and key-specific."""
        fp = key_fingerprint(KEY)
        assert len(fp) == 16
        assert fp == key_fingerprint(list(KEY))
        assert fp != key_fingerprint(FRAME)
        assert bits_to_str(KEY) not in fp
