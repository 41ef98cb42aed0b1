"""
Resilience components for the episode harvester.
"""

from .retry_handler import RetryHandler

__all__ = [
    'RetryHandler',
]
