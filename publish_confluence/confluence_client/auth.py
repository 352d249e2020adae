"""Credential loading for the Confluence REST API.

Credentials come from the environment, optionally seeded from a ``.env``
file by python-dotenv. They are read on demand and never logged.
"""

import logging
import os
from typing import List, NamedTuple, Optional

from dotenv import load_dotenv

from .errors import InvalidCredentialsError

logger = logging.getLogger(__name__)

URL_VARIABLE = 'CONFLUENCE_URL'
USER_VARIABLE = 'CONFLUENCE_USER'
TOKEN_VARIABLE = 'CONFLUENCE_API_TOKEN'


class Credentials(NamedTuple):
    """Confluence API credentials."""
    url: str
    user: str
    api_token: str


class Authenticator:
    """Provides Confluence credentials from the environment.

    Required environment variables:
        CONFLUENCE_URL: Base URL of the site, e.g. https://example.atlassian.net/wiki
        CONFLUENCE_USER: Account email address
        CONFLUENCE_API_TOKEN: API token for the account

    Args:
        env_file: Optional path of a dotenv file; by default python-dotenv
            searches for ``.env`` from the working directory upwards

    Example:
        >>> creds = Authenticator().get_credentials()
        >>> creds.url
        'https://example.atlassian.net/wiki'
    """

    def __init__(self, env_file: Optional[str] = None):
        # Variables already set in the environment win over the file
        load_dotenv(dotenv_path=env_file, override=False)

    def get_credentials(self) -> Credentials:
        """Read and validate the credentials.

        Raises:
            InvalidCredentialsError: If any variable is missing or empty
        """
        url = os.getenv(URL_VARIABLE, '').strip()
        user = os.getenv(USER_VARIABLE, '').strip()
        api_token = os.getenv(TOKEN_VARIABLE, '').strip()

        missing: List[str] = [
            name for name, value in (
                (URL_VARIABLE, url),
                (USER_VARIABLE, user),
                (TOKEN_VARIABLE, api_token),
            )
            if not value
        ]
        if missing:
            logger.debug(f"Missing credential variables: {', '.join(missing)}")
            raise InvalidCredentialsError(user=user or "unknown", endpoint=url or "unknown")

        return Credentials(url=url.rstrip('/'), user=user, api_token=api_token)
