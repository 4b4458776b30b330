"""
PagePulse page-side instrumentation.

Usage:
    lifecycle = PageLifecycle()
    tracker = SessionTracker(
        ClientConfig.from_bootstrap(document),
        PageEnvironment(user_agent=ua, title="Home"),
        storage=JsonFileStorage("page-storage.json"),
        transport=BeaconTransport(),
    )
    if tracker.start():
        tracker.attach(lifecycle)
"""

from .lifecycle import PageLifecycle
from .storage import JsonFileStorage, MemoryStorage
from .throttle import ThrottleGate
from .tracker import ClientConfig, PageEnvironment, SessionTracker, TrackerState
from .transport import BeaconTransport, RecordingTransport

__all__ = [
    "BeaconTransport",
    "ClientConfig",
    "JsonFileStorage",
    "MemoryStorage",
    "PageEnvironment",
    "PageLifecycle",
    "RecordingTransport",
    "SessionTracker",
    "ThrottleGate",
    "TrackerState",
]
