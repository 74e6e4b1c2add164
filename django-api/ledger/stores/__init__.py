from ledger.stores.django_store import (
    DjangoAuditStore,
    DjangoInventoryStore,
    DjangoOrderStore,
    ledger_transaction,
)
from ledger.stores.interfaces import AuditStore, InventoryStore, OrderStore

__all__ = [
    "InventoryStore",
    "OrderStore",
    "AuditStore",
    "DjangoInventoryStore",
    "DjangoOrderStore",
    "DjangoAuditStore",
    "ledger_transaction",
]
