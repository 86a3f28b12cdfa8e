"""
CRISTAL Core Resilience — Public API
======================================
Bounded retry with timeouts and coalescing of concurrent calls.
"""

from core.resilience.coalescing import InFlightRegistry
from core.resilience.retry import AttemptPolicy, RetryExhausted, run_with_attempts

__all__ = [
    "AttemptPolicy",
    "InFlightRegistry",
    "RetryExhausted",
    "run_with_attempts",
]
