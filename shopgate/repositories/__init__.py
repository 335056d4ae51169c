"""
Repository Layer Package.

Provides data-access abstractions over the document store.
All document operations flow through repositories; services never call
the store directly.

Usage:
    from shopgate.repositories.account_repository import AccountRepository
    from shopgate.repositories.staff_repository import StaffRepository
"""

from shopgate.repositories.base_repository import BaseRepository
from shopgate.repositories.account_repository import AccountRepository
from shopgate.repositories.staff_repository import StaffRepository
from shopgate.repositories.guest_repository import GuestRepository

__all__ = [
    "BaseRepository",
    "AccountRepository",
    "StaffRepository",
    "GuestRepository",
]
