"""Handshake identity resolution."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class Handshake:
    """Credentials presented once, when the connection is established.

    Attributes:
        token: Opaque identity credential.
        user_id: Identity the client claims.
        headers: Upgrade request headers, lower-cased keys.
    """

    token: str | None = None
    user_id: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_request(
        cls,
        query: Mapping[str, str],
        headers: Mapping[str, str],
    ) -> "Handshake":
        """Build a handshake from upgrade request query params and headers.

        The token comes from the ``token`` query parameter, falling back to
        an ``Authorization: Bearer`` header.
        """
        lowered = {k.lower(): v for k, v in headers.items()}
        token = query.get("token")
        if not token:
            auth = lowered.get("authorization", "")
            if auth.lower().startswith(BEARER_PREFIX):
                token = auth[len(BEARER_PREFIX) :].strip()
        return cls(token=token or None, user_id=query.get("userId"), headers=lowered)


@runtime_checkable
class IdentityVerifier(Protocol):
    """Turns a handshake into a trusted user id, or None to refuse it."""

    async def verify(self, handshake: Handshake) -> str | None: ...


class ClaimedIdentityVerifier:
    """Trusts the claimed user id whenever a non-empty token is present.

    The token's signature is not checked here; it is assumed to have been
    verified by whoever issued it. Hosts that can check the credential
    should pass their own IdentityVerifier instead.
    """

    async def verify(self, handshake: Handshake) -> str | None:
        if not handshake.token or not handshake.token.strip():
            return None
        if not handshake.user_id or not handshake.user_id.strip():
            return None
        return handshake.user_id.strip()
