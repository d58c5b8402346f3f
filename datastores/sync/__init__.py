"""
Store synchronization.
"""

from .synchronization import SyncSubscription, synchronize

__all__ = ["SyncSubscription", "synchronize"]
