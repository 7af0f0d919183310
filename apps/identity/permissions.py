from typing import List, Dict, Optional
from .roles import UserRole

# Define all available permissions here for reference
class Permissions:
    # Stores
    STORE_CREATE = "store.create"

    # Products
    PRODUCT_CREATE = "product.create"
    PRODUCT_UPDATE = "product.update"
    PRODUCT_DELETE = "product.delete"
    PRODUCT_HARD_DELETE = "product.hard_delete"

    # Categories
    CATEGORY_CREATE = "category.create"
    CATEGORY_UPDATE = "category.update"
    CATEGORY_DELETE = "category.delete"
    CATEGORY_VIEW_ALL = "category.view_all"


# Static Role -> Permission Mapping. Roles do not inherit from each other.
ROLE_PERMISSIONS: Dict[str, List[str]] = {
    UserRole.BUSINESS: [
        Permissions.STORE_CREATE,
        Permissions.PRODUCT_CREATE,
        Permissions.PRODUCT_UPDATE,
        Permissions.PRODUCT_DELETE,
    ],
    UserRole.ADMIN: [
        Permissions.PRODUCT_HARD_DELETE,
        Permissions.CATEGORY_CREATE,
        Permissions.CATEGORY_UPDATE,
        Permissions.CATEGORY_DELETE,
        Permissions.CATEGORY_VIEW_ALL,
    ],
    UserRole.USER: [],
}


def get_role_permissions(role: Optional[str]) -> List[str]:
    """
    Returns a list of permission strings granted to the given role header value.
    """
    if not role:
        return []
    return ROLE_PERMISSIONS.get(role, [])
