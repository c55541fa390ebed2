"""Orchestrator for app-deployer.

This module provides the reconciler invoked for each change notification,
the queue that delivers notifications to it, and the loader used to run it
against local manifests.
"""

from .reconciler import Reconciler, ReconcilerConfig, ReconcilePass, ReconcileResult
from .queue import ReconcileQueue, QueueConfig
from .loader import ResourceLoader, LoadOptions, load_store

__all__ = [
    "Reconciler",
    "ReconcilerConfig",
    "ReconcilePass",
    "ReconcileResult",
    "ReconcileQueue",
    "QueueConfig",
    "ResourceLoader",
    "LoadOptions",
    "load_store",
]
