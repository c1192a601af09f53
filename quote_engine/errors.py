"""
Errors and Warnings for the Quote Engine

Errors are raised. Warnings are plain records attached to results so the
caller decides how loudly to surface them.
"""

from dataclasses import dataclass, field


class QuoteEngineError(Exception):
    """Base class for every error raised by the engine."""


class InvalidInputError(QuoteEngineError, ValueError):
    """Malformed or negative numeric input to a calculator."""


class ConfigurationMissingError(QuoteEngineError):
    """No active pricing configuration for the tenant."""

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"No active pricing configuration for tenant: {tenant_id}")


class QuoteNotFoundError(QuoteEngineError, LookupError):
    """A quote (or package) referenced by id does not exist."""


class TransientStoreError(QuoteEngineError):
    """Transport-level failure talking to the backing store. Safe to retry."""


@dataclass
class PartialFreezeWarning:
    """Some requested catalog services could not be frozen."""

    requested: int
    frozen: int
    missing_service_ids: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"Froze {self.frozen} of {self.requested} services; "
            f"missing: {', '.join(self.missing_service_ids)}"
        )

    def to_dict(self) -> dict:
        return {
            "type": "partial_freeze",
            "requested": self.requested,
            "frozen": self.frozen,
            "missing_service_ids": list(self.missing_service_ids),
            "message": self.message,
        }


@dataclass
class NotFrozenWarning:
    """A legacy line item was read without frozen values."""

    item_id: str | None
    service_id: str | None
    reason: str  # 'legacy_item' or 'service_missing'

    def to_dict(self) -> dict:
        return {
            "type": "not_frozen",
            "item_id": self.item_id,
            "service_id": self.service_id,
            "reason": self.reason,
        }
