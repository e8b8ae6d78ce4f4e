# gatekeeper/services/auth/claims.py
"""Access-token claims and the issuer shared by login, registration and refresh."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from gatekeeper.models.user import User
from gatekeeper.services._shared.errors import NotFoundError
from gatekeeper.services._shared.ports.token_provider import TokenProvider
from gatekeeper.services.roles.service import UserRolesService
from gatekeeper.uow.base import UnitOfWork


@dataclass(frozen=True, slots=True)
class AccessTokenClaims:
    """
    Identity embedded in an access token.

    :param sub: User id.
    :param username: Username at issuance time.
    :param email: Email at issuance time.
    :param roles: Role names held at issuance time.
    :param iat: Issued-at instant (UTC).
    :param exp: Expiry instant (UTC).
    """

    sub: int
    username: str
    email: str
    roles: tuple[str, ...]
    iat: datetime
    exp: datetime

    def has_role(self, *names: str) -> bool:
        """``True`` when at least one of ``names`` is present."""
        return any(name in self.roles for name in names)

    @classmethod
    def from_jwt(cls, payload: dict[str, Any]) -> AccessTokenClaims:
        """Build claims from a decoded, already verified JWT payload."""
        return cls(
            sub=int(payload["sub"]),
            username=str(payload.get("username", "")),
            email=str(payload.get("email", "")),
            roles=tuple(payload.get("roles") or ()),
            iat=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            exp=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )


class AccessTokenIssuer:
    """
    Mint access tokens from the user's current row and roles.

    Nothing is cached: every call re-reads the roles so grants and
    revocations apply to the next minted token.

    :param token_provider: Signing adapter.
    :param user_roles: Role resolution service.
    :param ttl_seconds: Access-token lifetime.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        user_roles: UserRolesService,
        ttl_seconds: int = 3600,
    ) -> None:
        self.tokens = token_provider
        self.user_roles = user_roles
        self.ttl = timedelta(seconds=int(ttl_seconds))

    def issue_for(self, user: User, uow: UnitOfWork) -> str:
        """Sign a token for an already loaded ``user`` inside ``uow``."""
        roles = [role.name for role in self.user_roles.get_user_roles(user.id, uow=uow)]
        return self.tokens.create_access_token(
            identity=str(user.id),
            additional_claims={
                "username": user.username,
                "email": user.email,
                "roles": roles,
            },
            expires_delta=self.ttl,
        )

    def issue(self, user_id: int, uow: UnitOfWork) -> str:
        """
        Load ``user_id`` and sign a token for it.

        :raises NotFoundError: If the user no longer exists.
        """
        user = uow.users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return self.issue_for(user, uow)
