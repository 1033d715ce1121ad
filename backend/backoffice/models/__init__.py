from .reference import Store, Branch
from .auth import User, UserSession
from .catalog import Category, Product
from .transactions import Header, ItemDetail, PaymentDetail, GovernmentDiscount
from .documents import Receipt, Zread

__all__ = [
    'Store', 'Branch',
    'User', 'UserSession',
    'Category', 'Product',
    'Header', 'ItemDetail', 'PaymentDetail', 'GovernmentDiscount',
    'Receipt', 'Zread',
]
