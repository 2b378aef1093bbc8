"""
Crossing state model and JSON snapshot persistence.
"""

from ma60_monitor.data.state import (
    CrossingState,
    CrossingStatus,
    StateStore,
    TrackedAsset,
)

__all__ = [
    'CrossingState',
    'CrossingStatus',
    'StateStore',
    'TrackedAsset',
]
