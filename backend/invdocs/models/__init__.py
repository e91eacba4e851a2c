from .inventory import InventoryItem, StockMovement
from .documents import Document, DocumentSequence
from .orders import Order, OrderLine, ORDER_KINDS
from .auth import User
from .activity import ActivityLog

__all__ = [
    'InventoryItem', 'StockMovement',
    'Document', 'DocumentSequence',
    'Order', 'OrderLine', 'ORDER_KINDS',
    'User',
    'ActivityLog',
]
