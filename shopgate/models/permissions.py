"""
Staff Permission Set.

Fixed record of capability flags granted to a staff member.  Stored on
the wire under the camelCase permission names (``canViewStock``); unknown
keys are rejected at validation time so a typo can never silently grant
or hide a capability.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from shopgate.models.enums import Permission

__all__ = ["PermissionSet"]


_FIELD_BY_PERMISSION: dict[Permission, str] = {
    Permission.CREATE_RECEIPTS: "can_create_receipts",
    Permission.VIEW_RECEIPTS: "can_view_receipts",
    Permission.VIEW_ANALYTICS: "can_view_analytics",
    Permission.VIEW_STOCK: "can_view_stock",
    Permission.VIEW_EMPLOYEES: "can_view_employees",
    Permission.MANAGE_EXPENSES: "can_manage_expenses",
    Permission.MARK_ATTENDANCE: "can_mark_attendance",
}


class PermissionSet(BaseModel):
    """One boolean per :class:`Permission`; absent flags default to ``False``."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    can_create_receipts: bool = Field(default=False, alias="canCreateReceipts")
    can_view_receipts: bool = Field(default=False, alias="canViewReceipts")
    can_view_analytics: bool = Field(default=False, alias="canViewAnalytics")
    can_view_stock: bool = Field(default=False, alias="canViewStock")
    can_view_employees: bool = Field(default=False, alias="canViewEmployees")
    can_manage_expenses: bool = Field(default=False, alias="canManageExpenses")
    can_mark_attendance: bool = Field(default=False, alias="canMarkAttendance")

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def full(cls) -> "PermissionSet":
        """Every capability granted (shop owners and platform admins)."""
        return cls.model_validate({p.value: True for p in Permission})

    @classmethod
    def none(cls) -> "PermissionSet":
        return cls()

    @classmethod
    def guest(cls) -> "PermissionSet":
        """The single capability a guest account holds."""
        return cls.model_validate({Permission.CREATE_RECEIPTS.value: True})

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, bool]) -> "PermissionSet":
        """Validate a raw ``{permission_name: bool}`` mapping.

        Raises:
            pydantic.ValidationError: If *mapping* contains an unknown key
                or a non-boolean value.
        """
        return cls.model_validate(dict(mapping))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def allows(self, permission: Permission) -> bool:
        return bool(getattr(self, _FIELD_BY_PERMISSION[Permission(permission)]))

    def granted(self) -> frozenset[Permission]:
        return frozenset(p for p in Permission if self.allows(p))

    def to_mapping(self) -> dict[str, bool]:
        """Wire form keyed by camelCase permission names."""
        return self.model_dump(by_alias=True)
