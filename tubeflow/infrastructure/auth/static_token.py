"""Token provider serving a fixed bearer token (from CLI flag or configuration)."""

import logging
from typing import Optional

from tubeflow.domain.interfaces.token_provider import TokenProvider

logger = logging.getLogger(__name__)


class StaticTokenProvider(TokenProvider):
    """Always loaded; signed in whenever a non-empty token was supplied."""

    def __init__(self, token: Optional[str]):
        self._token = token or None
        if self._token is None:
            logger.warning("No API token configured, authenticated requests will be refused.")

    @property
    def is_loaded(self) -> bool:
        return True

    @property
    def is_signed_in(self) -> bool:
        return self._token is not None

    async def get_token(self) -> Optional[str]:
        return self._token
