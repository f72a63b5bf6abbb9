from .tenancy import Organization, User
from .catalog import Category, Product, Supplier, Customer, Warehouse
from .inventory import StockItem
from .purchasing import PurchaseOrder, PurchaseOrderItem
from .sales import Order, OrderItem
from .audit import AuditLog

__all__ = [
    'Organization', 'User',
    'Category', 'Product', 'Supplier', 'Customer', 'Warehouse',
    'StockItem',
    'PurchaseOrder', 'PurchaseOrderItem',
    'Order', 'OrderItem',
    'AuditLog',
]
