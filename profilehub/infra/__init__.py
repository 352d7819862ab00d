"""
Infrastructure layer for profilehub.

Contains abstractions for external systems:
- CredentialSource: Cached tokens from the git credential helper
- DeviceAuthenticator: OAuth device flow
- GitHubClient: GitHub REST and Git Data API access
- FileStore: Atomic JSON file persistence
- Clock / RetryPolicy: Time source and polling policy

These provide clean interfaces that can be mocked for testing.
"""

from .credential_source import CredentialSource
from .device_auth import DeviceAuthenticator, DeviceCode, DeviceFlowConfig
from .github_client import GitHubClient
from .file_store import FileStore
from .retry import Clock, RetryPolicy

__all__ = [
    'CredentialSource',
    'DeviceAuthenticator',
    'DeviceCode',
    'DeviceFlowConfig',
    'GitHubClient',
    'FileStore',
    'Clock',
    'RetryPolicy',
]
