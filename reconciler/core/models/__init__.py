"""
Domain models — Pydantic types for the reconciler.

All models are re-exported here for convenient access:

    from reconciler.core.models import Action, Receipt, ReconcileConfig
"""

from reconciler.core.models.action import Action, ErrorKind, Receipt
from reconciler.core.models.config import (
    BackendConfig,
    ReconcileConfig,
    StaleBackupPolicy,
)

__all__ = [
    # action.py
    "Action",
    "ErrorKind",
    "Receipt",
    # config.py
    "BackendConfig",
    "ReconcileConfig",
    "StaleBackupPolicy",
]
