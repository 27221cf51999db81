from .tenancy import Store, StoreSettings, StoreRolloverConfig, ShiftTemplate, StoreMembership
from .auth import Profile, StoreManager, SessionToken
from .scheduling import Schedule, ScheduledShift
from .timekeeping import Shift, DrawerCount
from .sales import DailySalesRecord, ShiftSalesCount
from .closeouts import SafeCloseout, SafeCloseoutExpense, SafeCloseoutPhoto
from .audit import ShiftAuditEvent

__all__ = [
    'Store', 'StoreSettings', 'StoreRolloverConfig', 'ShiftTemplate', 'StoreMembership',
    'Profile', 'StoreManager', 'SessionToken',
    'Schedule', 'ScheduledShift',
    'Shift', 'DrawerCount',
    'DailySalesRecord', 'ShiftSalesCount',
    'SafeCloseout', 'SafeCloseoutExpense', 'SafeCloseoutPhoto',
    'ShiftAuditEvent',
]
