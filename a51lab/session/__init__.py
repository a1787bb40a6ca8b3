# Session Module
"""
Encryption sessions that own one cipher state and walk a plaintext
through keystream generation, either step by step or all at once.
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    from . import session
    return getattr(session, name)

__all__ = [
    'Session',
    'SessionConfig',
    'StepResult',
    'encrypt_text',
    'decrypt_bits',
]
