"""
Cached forge credentials for profilehub.

Asks git's configured credential helper (Git Credential Manager,
osxkeychain, libsecret, store, ...) for a GitHub token. Works the same
on every platform because git does the lookup.

A missing helper, a timeout or garbage output all mean "no token";
this is an expected outcome, never an error.
"""

import logging
import os
import subprocess
from typing import Dict, Optional

from ..exit_codes import CredentialUnavailable

logger = logging.getLogger(__name__)

# Askpass programs can open a GUI prompt even with terminal prompts off
ASKPASS_VARIABLES = {'GIT_ASKPASS', 'SSH_ASKPASS'}
NON_INTERACTIVE_FILL = [
    'git', '-c', 'credential.interactive=false', '-c', 'core.askPass=',
    'credential', 'fill',
]


def parse_credential_output(output: str) -> Dict[str, str]:
    """
    Parse ``key=value`` lines from ``git credential fill``.

    Values may themselves contain ``=``. Lines without ``=`` are ignored.
    """
    creds = {}
    for line in output.strip().splitlines():
        key, sep, value = line.partition('=')
        if sep:
            creds[key.strip()] = value
    return creds


class CredentialSource:
    """
    Reads a token from the git credential helper.

    Example:
        source = CredentialSource()
        token = source.get_token()
        if token is None:
            ...  # fall back to device flow
    """

    def __init__(self, host: str = "github.com", protocol: str = "https", timeout: float = 10):
        """
        Initialize CredentialSource.

        Args:
            host: Credential host to query
            protocol: Credential protocol to query
            timeout: Seconds to wait for the helper before giving up
        """
        self.host = host
        self.protocol = protocol
        self.timeout = timeout

    def _fill(self) -> Optional[str]:
        """Run ``git credential fill`` and return its stdout, or None."""
        request = f"protocol={self.protocol}\nhost={self.host}\n\n"
        env = {k: v for k, v in os.environ.items() if k not in ASKPASS_VARIABLES}
        env.update(GIT_TERMINAL_PROMPT='0', GCM_INTERACTIVE='never')
        try:
            result = subprocess.run(
                NON_INTERACTIVE_FILL,
                input=request,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=env,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
            logger.debug(f"git credential fill unavailable: {e}")
            return None

        if result.returncode != 0:
            logger.debug(f"git credential fill exited with {result.returncode}")
            return None
        return result.stdout

    def get_token(self) -> Optional[str]:
        """
        Get a cached token for the configured host.

        Returns:
            The stored password/token, or None if none is available
        """
        output = self._fill()
        if not output:
            return None

        token = parse_credential_output(output).get('password')
        if not token:
            logger.debug("credential helper returned no password field")
            return None
        return token

    def require_token(self) -> str:
        """
        Get a cached token or raise.

        Raises:
            CredentialUnavailable: If the helper has no token
        """
        token = self.get_token()
        if token is None:
            raise CredentialUnavailable()
        return token
