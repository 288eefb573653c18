"""
Broadcast Module
================

Live fan-out of tick snapshots.

Components:
    - Subscription: Bounded drop-oldest queue for one subscriber
    - BroadcastHub: Subscriber registry, publish, on-demand refresh

Example:
    hub = BroadcastHub(refresh_source=builder.build)
    subscription = hub.subscribe()

    # Tick side
    hub.publish(readings)

    # Transport side
    snapshot = await subscription.get()
"""

from crowd_monitor.broadcast.subscription import Snapshot, Subscription
from crowd_monitor.broadcast.hub import BroadcastHub, SnapshotSource

__all__ = ["BroadcastHub", "Snapshot", "SnapshotSource", "Subscription"]
