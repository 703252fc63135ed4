"""Browser identity toolkit for the search collector.

This module provides the pieces that keep one consistent identity across runs:
- Host-derived fingerprint generation
- Storage state and fingerprint persistence
- Layered context composition with stealth init scripts
- Headless to headed escalation
"""

from .fingerprint import HostHints, generate_fingerprint, timezone_for_offset
from .identity import (
    DEVICE_TEMPLATES,
    BrowserIdentity,
    ContextLayer,
    DeviceTemplate,
    IdentityComposer,
    merge_layers,
)
from .retry import AttemptOutcome, EscalationMatrix, LaunchMode
from .storage import PersistedState, StateStore, fingerprint_path_for

__all__ = [
    "HostHints",
    "generate_fingerprint",
    "timezone_for_offset",
    "DEVICE_TEMPLATES",
    "BrowserIdentity",
    "ContextLayer",
    "DeviceTemplate",
    "IdentityComposer",
    "merge_layers",
    "AttemptOutcome",
    "EscalationMatrix",
    "LaunchMode",
    "PersistedState",
    "StateStore",
    "fingerprint_path_for",
]
