from .auth import Profile, SessionToken
from .catalog import Product, Location
from .supply_chain import SupplyChainTransaction, LogisticsDetail
from .communications import Notification
from .reports import Report

__all__ = [
    'Profile', 'SessionToken',
    'Product', 'Location',
    'SupplyChainTransaction', 'LogisticsDetail',
    'Notification',
    'Report',
]
