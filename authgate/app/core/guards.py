"""
Ownership guards for multi-tenant access control.

Every owner-managed resource carries an owner_id; owners may only touch
their own rows.
"""

from typing import Optional

from authgate.app.core.exceptions import InsufficientPermissionsError, ResourceNotFoundError


def verify_ownership(resource_owner_id: int, current_owner: dict) -> bool:
    """
    Verify that the current owner owns the resource.

    Args:
        resource_owner_id: The owner ID of the resource being accessed
        current_owner: Authenticated owner payload from JWT

    Returns:
        True if the owner IDs match
    """
    return current_owner.get("owner_id") == resource_owner_id


class OwnershipGuard:
    """
    Class-based ownership guard.

    Usage:
        ownership_guard = OwnershipGuard()

        webhook = await db.get(Webhook, webhook_id)
        ownership_guard.enforce(webhook, current_owner, "Webhook", webhook_id)
    """

    def enforce(
        self,
        resource: Optional[object],
        current_owner: dict,
        resource_name: str = "resource",
        resource_id: Optional[int] = None,
    ):
        """
        Raise unless `resource` exists and belongs to `current_owner`.

        Raises:
            ResourceNotFoundError: 404 if the resource does not exist
            InsufficientPermissionsError: 403 if it belongs to another owner
        """
        if resource is None:
            raise ResourceNotFoundError(resource_name, resource_id)
        if not verify_ownership(resource.owner_id, current_owner):
            raise InsufficientPermissionsError(
                f"Access denied. You do not have permission to access this {resource_name.lower()}."
            )
        return resource
