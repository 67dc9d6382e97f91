from .auth import User, SessionToken
from .catalog import Product
from .invoices import Invoice, InvoiceItem, InvoiceAdjustment, InvoiceSequence

__all__ = [
    'User', 'SessionToken',
    'Product',
    'Invoice', 'InvoiceItem', 'InvoiceAdjustment', 'InvoiceSequence',
]
