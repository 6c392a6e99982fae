from .catalog import Category, Product
from .customers import Customer
from .orders import Order, OrderItem, OrderSequence, OrderStatus

__all__ = [
    'Category', 'Product',
    'Customer',
    'Order', 'OrderItem', 'OrderSequence', 'OrderStatus',
]
