"""
Service layer for profilehub.

Services orchestrate domain objects and infrastructure:
- ProfileStore: Local profiles (list, swap, save, load for publish)
- ForkService: Find or create the user's marketplace fork
- PublishService: Publish a profile as a marketplace pull request
"""

from .profile_service import ProfileStore, SwapResult
from .fork_service import ForkService
from .publish_service import PublishService, PublishResult

__all__ = [
    'ProfileStore',
    'SwapResult',
    'ForkService',
    'PublishService',
    'PublishResult',
]
