"""
Referrer Resolution

A promise may be referred by a contact or by a staff member. The stored
shape is a (referrer_type, referrer_id) pair, parsed by the models; here
the tagged value is resolved through one directory interface.
"""

from .models import ContactReferrer, Referrer, StaffReferrer
from .ports import ReferrerDirectory


class ReferrerResolver:
    """Resolves a referrer's display name."""

    def __init__(self, directory: ReferrerDirectory):
        self.directory = directory

    def resolve_referrer_name(self, referrer: Referrer) -> str | None:
        if isinstance(referrer, ContactReferrer):
            return self.directory.contact_name(referrer.id)
        if isinstance(referrer, StaffReferrer):
            return self.directory.staff_name(referrer.id)
        return None
