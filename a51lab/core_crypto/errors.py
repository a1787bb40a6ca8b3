"""
A5/1 Engine Errors

All failures raised by the engine are local, recoverable input or usage
errors. The caller can catch them and re-prompt for correct input.
"""


class A51Error(Exception):
    """Base class for every error raised by the A5/1 engine."""
    pass


class InvalidPhaseTransition(A51Error, RuntimeError):
    """Operation invoked while the cipher state is in the wrong phase."""
    pass


class PhaseOverrun(A51Error, RuntimeError):
    """More bits or clocks supplied than the current phase accepts."""
    pass


class MalformedBitstream(A51Error, ValueError):
    """Bit sequence is not made of 0/1 values or has a misaligned length."""
    pass


class EmptyInput(A51Error, ValueError):
    """Key, frame number or plaintext missing where one is required."""
    pass


class UnencodableText(A51Error, ValueError):
    """Text contains a character that does not fit in 8 bits."""
    pass
