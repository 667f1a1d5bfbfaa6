from .records import RECORD_ACTIVE, RECORD_ARCHIVED
from .tenancy import Tenant
from .directory import Client, Partner, Resource
from .supplies import Supply, StockMovement
from .events import Event, EventServiceItem, EventSupplyLine, ResourceCalendar
from .payments import Payment
from .activity import ActivityLog

__all__ = [
    'RECORD_ACTIVE', 'RECORD_ARCHIVED',
    'Tenant',
    'Client', 'Partner', 'Resource',
    'Supply', 'StockMovement',
    'Event', 'EventServiceItem', 'EventSupplyLine', 'ResourceCalendar',
    'Payment',
    'ActivityLog',
]
