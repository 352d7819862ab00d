"""
OAuth device authorization flow for profilehub.

The user authorizes in a browser with a short code while we poll for
the token. No personal access token or client secret is needed; the
OAuth app's client id is public.

States:
    Init -> AwaitingUser -> Polling -> Authorized
                                    -> Failed (expired, denied, error, timed out)
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from ..exit_codes import (
    AuthorizationDenied,
    AuthorizationFailed,
    DeviceFlowError,
    DeviceFlowExpired,
    DeviceFlowTimedOut,
)
from .retry import Clock, RetryPolicy

logger = logging.getLogger(__name__)

GITHUB_WEB = "https://github.com"
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"


@dataclass(frozen=True)
class DeviceFlowConfig:
    """Settings for the device flow, normally built from the config file."""
    client_id: str
    scope: str = "public_repo"
    web_url: str = GITHUB_WEB
    min_interval: float = 5
    slow_down_increment: float = 5
    default_expires_in: float = 900
    timeout: int = 30

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'DeviceFlowConfig':
        github = config.get('github', {})
        flow = config.get('device_flow', {})
        return cls(
            client_id=github.get('oauth_client_id', ''),
            scope=github.get('oauth_scope', 'public_repo'),
            web_url=github.get('web_url', GITHUB_WEB),
            min_interval=flow.get('min_interval', 5),
            slow_down_increment=flow.get('slow_down_increment', 5),
            default_expires_in=flow.get('default_expires_in', 900),
            timeout=github.get('timeout_seconds', 30),
        )


@dataclass(frozen=True)
class DeviceCode:
    """What the user needs to authorize, plus polling parameters."""
    device_code: str
    user_code: str
    verification_uri: str
    interval: float
    expires_in: float


class DeviceAuthenticator:
    """
    Runs the device flow to completion and returns an access token.

    The verification URI and user code are handed to ``on_code`` so the
    command layer decides how to show them.

    Example:
        auth = DeviceAuthenticator(DeviceFlowConfig(client_id="Iv1.abc"))
        token = auth.authenticate(on_code=lambda c: print(c.user_code))
    """

    def __init__(
        self,
        config: DeviceFlowConfig,
        clock: Optional[Clock] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.clock = clock or Clock()
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
        })

    def _post(self, path: str, body: Dict[str, Any]) -> requests.Response:
        return self.session.post(
            f"{self.config.web_url.rstrip('/')}{path}",
            json=body,
            timeout=self.config.timeout,
        )

    def request_code(self) -> DeviceCode:
        """
        Ask the provider for a device code.

        Raises:
            DeviceFlowError: If the client id is missing or the request is rejected
        """
        if not self.config.client_id:
            raise DeviceFlowError(
                "Device flow is not configured: set github.oauth_client_id "
                "(or PROFILEHUB_GITHUB_OAUTH_CLIENT_ID)"
            )

        try:
            response = self._post('/login/device/code', {
                'client_id': self.config.client_id,
                'scope': self.config.scope,
            })
        except requests.RequestException as e:
            raise DeviceFlowError(f"Device flow initiation failed: {e}") from e

        if not response.ok:
            raise DeviceFlowError(f"Device flow initiation failed: {response.status_code}")

        try:
            data = response.json()
            return DeviceCode(
                device_code=data['device_code'],
                user_code=data['user_code'],
                verification_uri=data['verification_uri'],
                interval=float(data.get('interval') or self.config.min_interval),
                expires_in=float(data.get('expires_in') or self.config.default_expires_in),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise DeviceFlowError(f"Device flow initiation returned an invalid response: {e}") from e

    def _exchange(self, code: DeviceCode) -> Dict[str, Any]:
        """One token exchange request."""
        try:
            response = self._post('/login/oauth/access_token', {
                'client_id': self.config.client_id,
                'device_code': code.device_code,
                'grant_type': DEVICE_GRANT_TYPE,
            })
            return response.json()
        except requests.RequestException as e:
            raise AuthorizationFailed(f"Token request failed: {e}") from e
        except ValueError as e:
            raise AuthorizationFailed(f"Token response was not JSON: {e}") from e

    def poll(self, code: DeviceCode) -> str:
        """
        Poll until the user authorizes, the code expires or is denied.

        Returns:
            The access token

        Raises:
            DeviceFlowExpired, AuthorizationDenied, AuthorizationFailed,
            DeviceFlowTimedOut
        """
        policy = RetryPolicy(
            interval=code.interval,
            min_interval=self.config.min_interval,
            backoff_increment=self.config.slow_down_increment,
            deadline=code.expires_in,
        )

        for attempt in policy.attempts(self.clock):
            data = self._exchange(code)

            if data.get('access_token'):
                logger.debug(f"Device flow authorized after {attempt} polls")
                return data['access_token']

            error = data.get('error')
            if error == 'authorization_pending':
                continue
            if error == 'slow_down':
                policy.slow_down()
                logger.debug(f"Provider asked to slow down, polling every {policy.interval}s")
                continue
            if error == 'expired_token':
                raise DeviceFlowExpired()
            if error == 'access_denied':
                raise AuthorizationDenied()

            raise AuthorizationFailed(
                data.get('error_description') or error or "unknown error",
                error_code=error,
            )

        raise DeviceFlowTimedOut()

    def authenticate(self, on_code: Optional[Callable[[DeviceCode], None]] = None) -> str:
        """
        Run the whole flow.

        Args:
            on_code: Called once with the code the user must enter

        Returns:
            A fresh access token
        """
        code = self.request_code()
        if on_code is not None:
            on_code(code)
        return self.poll(code)
