"""
Quote Statuses

Canonical status values plus the legacy spellings still found in stored quotes.
"""

PENDING = 'pending'
NEGOTIATION = 'negotiation'
CLOSING = 'closing'
APPROVED = 'approved'
AUTHORIZED = 'authorized'
CONTRACT_GENERATED = 'contract_generated'
CONTRACT_SIGNED = 'contract_signed'
CANCELLED = 'cancelled'
ARCHIVED = 'archived'

AUTHORIZED_FAMILY = frozenset({APPROVED, AUTHORIZED, CONTRACT_GENERATED, CONTRACT_SIGNED})
INACTIVE = frozenset({CANCELLED, ARCHIVED})

_ALIASES = {
    'pendiente': PENDING,
    'negociacion': NEGOTIATION,
    'en_cierre': CLOSING,
    'cierre': CLOSING,
    'aprobada': APPROVED,
    'autorizada': AUTHORIZED,
    'cancelada': CANCELLED,
    'archivada': ARCHIVED,
}


def normalize_status(status: str | None) -> str:
    """Map any stored spelling to its canonical status."""
    if not status:
        return PENDING
    value = str(status).strip().lower().replace('-', '_')
    return _ALIASES.get(value, value)


def is_authorized_family(status: str | None) -> bool:
    return normalize_status(status) in AUTHORIZED_FAMILY
