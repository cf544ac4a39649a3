"""
API Routes Package
"""
from . import (
    health,
    auth,
    subscriptions,
    venues,
)
