"""
External collaborators: clock / activation and token custody.
"""

from .clock import ActivationClock, ManualClock
from .custody import InMemoryTokenLedger, TokenCustody

__all__ = [
    "ActivationClock",
    "ManualClock",
    "InMemoryTokenLedger",
    "TokenCustody",
]
