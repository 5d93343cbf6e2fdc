"""Interface for obtaining bearer tokens for authenticated requests."""

import abc
from typing import Optional


class TokenProvider(abc.ABC):
    """Abstract Base Class for authentication token sources."""

    @property
    @abc.abstractmethod
    def is_loaded(self) -> bool:
        """Whether the provider has finished initialising."""
        pass

    @property
    @abc.abstractmethod
    def is_signed_in(self) -> bool:
        """Whether a user session is available."""
        pass

    @abc.abstractmethod
    async def get_token(self) -> Optional[str]:
        """Returns a fresh token, or None if one cannot be obtained."""
        pass
