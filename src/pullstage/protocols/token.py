"""Credential policy protocol definitions."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenProvider(Protocol):
    """Protocol for objects that hand out OAuth2 access tokens."""

    def token(self, scope: str) -> str:
        """
        Return an access token valid for the given scope.

        Args:
            scope: Space separated OAuth2 scope string

        Raises:
            TokenError: if no token could be obtained
        """
        ...
