"""
Draft ledger and projections.
"""

from .ledger import (
    DraftedPlayer,
    DraftLedger,
    DuplicatePlayerError,
    LedgerNotFoundError,
    LedgerRepository,
    RosterSlot,
)
from .projections import InMemoryProjectionProvider, PlayerProjection, resolve_pick

__all__ = [
    'DraftedPlayer',
    'DraftLedger',
    'DuplicatePlayerError',
    'LedgerNotFoundError',
    'LedgerRepository',
    'RosterSlot',
    'InMemoryProjectionProvider',
    'PlayerProjection',
    'resolve_pick',
]
