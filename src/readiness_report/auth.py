"""Credentials and the authorization schemes tried against Jira/Confluence.

Deployments mix token-only (cloud, PAT) and identity+secret (legacy
on-premise) authentication, so callers try an ordered list of strategies
and keep the first one the server accepts.
"""

from abc import ABC, abstractmethod
import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class Credential:
    """A secret plus the optional identity it is paired with.

    The identity is a username or e-mail address; it is only needed for
    Basic authentication.
    """

    token: str
    identity: str | None = None

    def __repr__(self) -> str:
        return f"Credential(identity={self.identity!r}, token=***)"


class AuthStrategy(ABC):
    """One way of turning a credential into an Authorization header."""

    name: str = "auth"

    @abstractmethod
    def authorization(self, credential: Credential) -> str | None:
        """Return the header value, or None if the credential can't be used."""

    def headers(self, credential: Credential) -> dict[str, str] | None:
        """Return request headers for this strategy, or None to skip it."""
        value = self.authorization(credential)
        if value is None:
            return None
        return {"Authorization": value, "Accept": "application/json"}


class BasicAuthStrategy(AuthStrategy):
    """Paired identity and secret, base64-combined."""

    name = "basic"

    def authorization(self, credential: Credential) -> str | None:
        if not credential.identity or not credential.token:
            return None
        pair = f"{credential.identity}:{credential.token}".encode()
        return f"Basic {base64.b64encode(pair).decode('ascii')}"


class BearerAuthStrategy(AuthStrategy):
    """Token-only authentication."""

    name = "bearer"

    def authorization(self, credential: Credential) -> str | None:
        if not credential.token:
            return None
        return f"Bearer {credential.token}"


# Wiki lookups try the legacy scheme first; Jira search prefers tokens
WIKI_AUTH_STRATEGIES: tuple[AuthStrategy, ...] = (
    BasicAuthStrategy(),
    BearerAuthStrategy(),
)
JIRA_AUTH_STRATEGIES: tuple[AuthStrategy, ...] = (
    BearerAuthStrategy(),
    BasicAuthStrategy(),
)
