"""
CRISTAL Core Sync
===================
Session bootstrap, optimistic mutations and debounced batch writes.
"""

from core.sync.batching import Batch, DebouncedBatcher
from core.sync.bootstrap import BootstrapState, SessionBootstrapper, TenantResolver
from core.sync.pipeline import MutationPipeline, is_temp_id, new_temp_id

__all__ = [
    "Batch",
    "BootstrapState",
    "DebouncedBatcher",
    "MutationPipeline",
    "SessionBootstrapper",
    "TenantResolver",
    "is_temp_id",
    "new_temp_id",
]
