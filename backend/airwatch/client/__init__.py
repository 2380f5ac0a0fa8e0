"""
Client Package
==============

The viewer side of the live dashboard.

- merge / CurrentView: Decide which reading a dashboard shows
- ViewerSession: Push + poll subscription feeding a CurrentView
"""

from .reconciler import CurrentView, merge
from .viewer_session import ClientConfig, ConnectionState, ViewerSession

__all__ = [
    "CurrentView",
    "merge",
    "ClientConfig",
    "ConnectionState",
    "ViewerSession",
]
