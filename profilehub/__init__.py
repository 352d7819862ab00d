"""
profilehub - Swap, save and publish Claude Code configuration profiles.

A profile is a saved ``.claude`` directory. profilehub applies profiles
to a project, saves the current one as a custom profile, and publishes
profiles to a shared marketplace repository as pull requests.

Quick Start:
    from profilehub import load_config, ProfileStore, PublishService

    config = load_config()
    store = ProfileStore.from_config(config)
    metadata, snapshot = store.load_for_publish("minimal")

    service = PublishService.from_config(config)
    for message in service.publish("minimal", metadata, snapshot):
        print(message)
    print(service.last_result.url)
"""

__version__ = "0.3.0"

from .domain import ProfileMetadata, RepoIndex, IndexEntry
from .services import ProfileStore, PublishService, PublishResult
from .config import load_config, save_config

__all__ = [
    "__version__",
    "ProfileMetadata",
    "RepoIndex",
    "IndexEntry",
    "ProfileStore",
    "PublishService",
    "PublishResult",
    "load_config",
    "save_config",
]
