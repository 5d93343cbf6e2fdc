"""Request executor that attaches a bearer token to every request.

A fresh token is fetched from the `TokenProvider` for each `execute` call,
so the convenience methods and `retry()` are authenticated as well.
"""

import logging
from typing import Any, Mapping, Optional

from tubeflow.domain.interfaces.token_provider import TokenProvider
from tubeflow.domain.models.errors import AuthenticationError
from tubeflow.infrastructure.resilience.request_executor import ResilientRequestExecutor

logger = logging.getLogger(__name__)


class AuthenticatedRequestExecutor(ResilientRequestExecutor):
    """ResilientRequestExecutor that requires a signed-in token provider."""

    def __init__(self, token_provider: TokenProvider, **kwargs: Any):
        super().__init__(**kwargs)
        self.token_provider = token_provider

    @property
    def is_authenticated(self) -> bool:
        return self.token_provider.is_loaded and self.token_provider.is_signed_in

    @property
    def auth_loading(self) -> bool:
        return not self.token_provider.is_loaded

    async def execute(
        self,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        **options: Any,
    ) -> Any:
        """Same as `ResilientRequestExecutor.execute` with an Authorization header.

        Raises:
            AuthenticationError: The provider is not loaded, no user is signed in,
                or no token could be obtained. No request is sent in that case.
        """
        if not self.token_provider.is_loaded:
            raise AuthenticationError("Authentication not loaded")
        if not self.token_provider.is_signed_in:
            raise AuthenticationError("User not authenticated")

        try:
            token = await self.token_provider.get_token()
        except AuthenticationError:
            raise
        except Exception as e:
            logger.error(f"Authentication error: {e}", exc_info=True)
            raise AuthenticationError(f"Failed to obtain authentication token: {e}", cause=e) from e
        if not token:
            raise AuthenticationError("Failed to obtain authentication token")

        authenticated_headers = {**(headers or {}), "Authorization": f"Bearer {token}"}
        return await super().execute(url, headers=authenticated_headers, **options)
