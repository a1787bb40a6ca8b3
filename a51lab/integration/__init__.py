# Integration Module
"""
Event logging for cipher sessions.

Keys and frame numbers are only ever recorded as fingerprints.
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    from . import event_logger
    return getattr(event_logger, name)

__all__ = [
    'EventType',
    'CipherEvent',
    'EventLogger',
]
