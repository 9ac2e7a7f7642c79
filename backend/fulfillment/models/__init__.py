from .catalog import Warehouse, Product
from .inventory import InventoryRecord
from .partners import Partner
from .orders import Order, OrderItem
from .returns import Return, ReturnItem
from .activity import ActivityLog
from .documents import DocumentSequence

__all__ = [
    'Warehouse', 'Product',
    'InventoryRecord',
    'Partner',
    'Order', 'OrderItem',
    'Return', 'ReturnItem',
    'ActivityLog',
    'DocumentSequence',
]
