"""
Android Store Adapter

Bridges a software-center host and the Android store service on D-Bus.
"""

__version__ = "1.0.0"

from .config import StoreConfig
from .dispatcher import Cancellable
from .models import App, AppQuery, Repository
from .plugin import AndroidStorePlugin
from .state_machine import AppState

__all__ = [
    "AndroidStorePlugin",
    "App",
    "AppQuery",
    "AppState",
    "Cancellable",
    "Repository",
    "StoreConfig",
]
