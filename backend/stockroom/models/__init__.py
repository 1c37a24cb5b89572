from .auth import Role, User
from .catalog import Category, Product, Vendor, ProductVendor
from .restock import RestockOrder, RestockDelivery
from .sales import Order, OrderItem

__all__ = [
    'Role', 'User',
    'Category', 'Product', 'Vendor', 'ProductVendor',
    'RestockOrder', 'RestockDelivery',
    'Order', 'OrderItem',
]
