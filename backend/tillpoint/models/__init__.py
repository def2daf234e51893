# Overview: Model exports for the checkout schema.

from .tenancy import Tenant, StockLocation
from .catalog import Item, Customer, Employee
from .sales import Sale, SaleLine, Payment, InvoiceSequence
from .inventory import InventoryRecord, InventoryTransaction
from .rewards import LoyaltyAccount, LoyaltyTransaction, CustomerTier, Commission

__all__ = [
    'Tenant', 'StockLocation',
    'Item', 'Customer', 'Employee',
    'Sale', 'SaleLine', 'Payment', 'InvoiceSequence',
    'InventoryRecord', 'InventoryTransaction',
    'LoyaltyAccount', 'LoyaltyTransaction', 'CustomerTier', 'Commission',
]
