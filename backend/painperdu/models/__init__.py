from .auth import User, SessionToken, ROLE_ADMIN, ROLE_SELLER
from .catalog import Category, Product
from .inventory import Inventory, InventoryItem, INVENTORY_TYPE_OPENING, INVENTORY_TYPE_CLOSING
from .schedules import Schedule, SCHEDULE_TYPE_WORK, SCHEDULE_TYPE_LEAVE, SCHEDULE_TYPE_SICK

__all__ = [
    'User', 'SessionToken', 'ROLE_ADMIN', 'ROLE_SELLER',
    'Category', 'Product',
    'Inventory', 'InventoryItem', 'INVENTORY_TYPE_OPENING', 'INVENTORY_TYPE_CLOSING',
    'Schedule', 'SCHEDULE_TYPE_WORK', 'SCHEDULE_TYPE_LEAVE', 'SCHEDULE_TYPE_SICK',
]
