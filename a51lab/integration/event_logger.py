"""
Event Logger Module

Records what a cipher session does, one event per engine step, so the
initialization and keystream generation can be replayed or displayed.

Features:
- Register zeroing, key/frame mixing and discard clock events
- Keystream step events (clock decision, output bits, cipher bit)
- Key and frame numbers stored as SHA-256 fingerprints only
- Callbacks for live observers
- JSON export
"""

import time
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Callable


# ============================================================================
# Constants
# ============================================================================

EVENT_VERSION = "1.0"


# ============================================================================
# Event Types
# ============================================================================

class EventType(Enum):
    """Types of engine events that can be logged."""

    # Session lifecycle
    SESSION_CREATED = "session_created"
    SESSION_RESET = "session_reset"

    # Initialization
    REGISTERS_ZEROED = "registers_zeroed"
    KEY_BIT_MIXED = "key_bit_mixed"
    KEY_MIXING_COMPLETE = "key_mixing_complete"
    FRAME_BIT_MIXED = "frame_bit_mixed"
    FRAME_MIXING_COMPLETE = "frame_mixing_complete"
    DISCARD_CLOCK = "discard_clock"
    INITIALIZATION_COMPLETE = "initialization_complete"

    # Keystream generation
    KEYSTREAM_BIT = "keystream_bit"
    ENCRYPTION_COMPLETE = "encryption_complete"


# ============================================================================
# Event Structure
# ============================================================================

@dataclass
class CipherEvent:
    """
    A single engine event.

    Key material never appears in details; sessions log fingerprints.
    """
    event_type: EventType
    sequence: int
    timestamp: int  # Unix timestamp
    details: Dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        return {
            'version': EVENT_VERSION,
            'type': self.event_type.value,
            'seq': self.sequence,
            'time': self.timestamp,
            'iso_time': datetime.fromtimestamp(self.timestamp).isoformat(),
            'details': self.details,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'CipherEvent':
        return cls(
            event_type=EventType(record['type']),
            sequence=record['seq'],
            timestamp=record['time'],
            details=record.get('details', {}),
        )

    def message(self) -> str:
        """One-line description of the event."""
        d = self.details
        t = self.event_type

        if t is EventType.SESSION_CREATED:
            return (f"Session created: {d['key_length']}-bit key {d['key_id']}, "
                    f"{d['frame_length']}-bit frame {d['frame_id']}, "
                    f"{d['plaintext_bits']} plaintext bits")
        if t is EventType.SESSION_RESET:
            return "Session reset."
        if t is EventType.REGISTERS_ZEROED:
            return "LFSRs zeroed."
        if t is EventType.KEY_BIT_MIXED:
            return f"Key Clock {d['index']}/{d['total']}: Mixed in key bit"
        if t is EventType.KEY_MIXING_COMPLETE:
            return "Key mixing complete."
        if t is EventType.FRAME_BIT_MIXED:
            return f"Frame Clock {d['index']}/{d['total']}: Mixed in frame bit"
        if t is EventType.FRAME_MIXING_COMPLETE:
            return "Frame number mixing complete."
        if t is EventType.DISCARD_CLOCK:
            cx, cy, cz = d['clock_bits']
            clocked = ', '.join(d['clocked']) or 'None'
            return (f"Dummy Clock {d['index']}/{d['total']}: Cx={cx}, Cy={cy}, Cz={cz}. "
                    f"Majority={d['majority']}. Clocked: {clocked}")
        if t is EventType.INITIALIZATION_COMPLETE:
            return "Initialization complete. Ready for keystream generation."
        if t is EventType.KEYSTREAM_BIT:
            ox, oy, oz = d['outputs']
            return (f"Bit {d['index']}: majority={d['majority']}, "
                    f"clocked={','.join(d['clocked'])}, "
                    f"keystream {ox} XOR {oy} XOR {oz} = {d['keystream_bit']}, "
                    f"cipher {d['plaintext_bit']} XOR {d['keystream_bit']} = {d['ciphertext_bit']}")
        if t is EventType.ENCRYPTION_COMPLETE:
            return f"Final Ciphertext (hex): {d['hex']}"
        return t.value

    def __str__(self) -> str:
        dt = datetime.fromtimestamp(self.timestamp)
        return f"[{dt.strftime('%Y-%m-%d %H:%M:%S')}] #{self.sequence} {self.message()}"


# ============================================================================
# Event Logger
# ============================================================================

class EventLogger:
    """
    In-memory log of engine events.

    Events are kept in order of arrival and numbered from 1.
    """

    def __init__(self, max_events: Optional[int] = None):
        """
        Initialize the event logger.

        Args:
            max_events: Keep only the most recent N events (None = unlimited)
        """
        if max_events is not None and max_events < 1:
            raise ValueError("max_events must be positive")
        self._max_events = max_events
        self._events: List[CipherEvent] = []
        self._event_count = 0
        self._callbacks: List[Callable[[CipherEvent], None]] = []

    def log(self, event_type: EventType, **details: Any) -> CipherEvent:
        """
        Record an event.

        Args:
            event_type: What happened
            **details: JSON-serializable event details

        Returns:
            The logged event
        """
        self._event_count += 1
        event = CipherEvent(
            event_type=event_type,
            sequence=self._event_count,
            timestamp=int(time.time()),
            details=details,
        )
        self._events.append(event)
        if self._max_events is not None and len(self._events) > self._max_events:
            del self._events[0]

        for callback in self._callbacks:
            callback(event)
        return event

    def add_callback(self, callback: Callable[[CipherEvent], None]) -> None:
        """Add a callback to be notified of new events."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[CipherEvent], None]) -> None:
        """Remove a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    # ========================================================================
    # Queries
    # ========================================================================

    @property
    def event_count(self) -> int:
        """Total events logged, including any dropped by max_events."""
        return self._event_count

    def get_all_events(self) -> List[CipherEvent]:
        return list(self._events)

    def get_events_by_type(self, event_type: EventType) -> List[CipherEvent]:
        return [e for e in self._events if e.event_type is event_type]

    def get_last_event(self) -> Optional[CipherEvent]:
        return self._events[-1] if self._events else None

    def clear(self) -> None:
        """Drop recorded events; numbering continues."""
        self._events.clear()

    def format_log(self) -> str:
        """Human-readable log, one event per line."""
        return '\n'.join(event.message() for event in self._events)

    def export_log(self) -> str:
        """Export all events as JSON."""
        return json.dumps([e.to_record() for e in self._events], indent=2)

    @classmethod
    def import_log(cls, json_str: str) -> List[CipherEvent]:
        """Parse events previously written by export_log()."""
        return [CipherEvent.from_record(r) for r in json.loads(json_str)]
