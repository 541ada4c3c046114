"""
Queue Synchronization Server

Keeps one authoritative media queue and lets many observers mirror it by
replaying small versioned deltas, falling back to a full snapshot when an
observer has fallen too far behind.
"""

__version__ = "1.0.0"
