from .auth import User
from .customers import Customer
from .inventory import Supplier, Delivery, Stock, StockLog, Jewellery, LockerVerification
from .orders import Design, Order, OrderStatusHistory

__all__ = [
    'User',
    'Customer',
    'Supplier', 'Delivery', 'Stock', 'StockLog', 'Jewellery', 'LockerVerification',
    'Design', 'Order', 'OrderStatusHistory',
]
