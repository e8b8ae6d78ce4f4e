# gatekeeper/services/auth/service.py
from __future__ import annotations

import logging
from functools import cache

from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from gatekeeper.services._shared.base import BaseService
from gatekeeper.services._shared.errors import AuthenticationError
from gatekeeper.services.auth.claims import AccessTokenIssuer
from gatekeeper.services.auth.dto import AuthResultOut, LoginIn, RegisterIn, UserPublicOut
from gatekeeper.services.identity.service import IdentityService, account_conflict
from gatekeeper.services.refresh.service import RefreshTokenService
from gatekeeper.services.roles.service import UserRolesService

log = logging.getLogger(__name__)


@cache
def _dummy_hash() -> str:
    """Hash verified for unknown usernames so both failure paths cost the same."""
    return generate_password_hash("gatekeeper-timing-equalizer")


class AuthService(BaseService):
    """
    Registration and login.

    Registration runs as one read-write unit of work: uniqueness check, user
    insert, default role, confirmation token stored and emailed, access token,
    refresh token, commit. Any failure, including a refused email, rolls the
    whole registration back.
    """

    def __init__(
        self,
        *,
        issuer: AccessTokenIssuer,
        identity: IdentityService,
        refresh_tokens: RefreshTokenService,
        user_roles: UserRolesService,
    ) -> None:
        self.issuer = issuer
        self.identity = identity
        self.refresh_tokens = refresh_tokens
        self.user_roles = user_roles

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> AuthResultOut:
        """
        Create an account and sign the user in.

        :param dto: Registration input.
        :returns: Public user plus access and refresh tokens.
        :raises ValidationError: ``username`` and/or ``email`` already taken,
            including when a concurrent registration wins the race.
        :raises EmailDispatchError: Confirmation email could not be sent;
            nothing was persisted.
        :raises InternalError: Role catalog not seeded, or commit failure.
        """
        try:
            with self.rw_uow() as uow:
                user, role = self.identity.create_user_in_transaction(uow, dto)
                access = self.issuer.issue_for(user, uow)
                refresh = self.refresh_tokens.generate_refresh_token_in_transaction(uow, user.id)
                result = AuthResultOut(
                    user=UserPublicOut.from_model(user, [role.name]),
                    access_token=access,
                    refresh_token=refresh,
                )
        except IntegrityError as exc:
            raise account_conflict(exc) from exc

        log.info("User registered", extra={"user_id": result.user.id, "event": "register"})
        return result

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> AuthResultOut:
        """
        Authenticate by username and password and issue a token pair.

        The password is checked before account state, so only a caller who
        knows the password learns that an account is inactive or unconfirmed.

        :raises AuthenticationError: ``auth.errors.invalid_credentials``,
            ``auth.errors.account_inactive`` or ``auth.errors.email_not_confirmed``.
        """
        with self.ro_uow() as uow:
            user = uow.users.get_by_username(dto.username)
            if user is None:
                check_password_hash(_dummy_hash(), dto.password)
                raise AuthenticationError("auth.errors.invalid_credentials")
            # password before account state: a wrong password never reveals that
            # the account is inactive or unconfirmed
            if not user.verify_password(dto.password):
                raise AuthenticationError("auth.errors.invalid_credentials")
            if not user.is_active:
                raise AuthenticationError("auth.errors.account_inactive")
            if not user.is_email_confirmed:
                raise AuthenticationError("auth.errors.email_not_confirmed")

            roles = [r.name for r in self.user_roles.get_user_roles(user.id, uow=uow)]
            access = self.issuer.issue_for(user, uow)
            public = UserPublicOut.from_model(user, roles)

        # Its own atomic insert; no wider transaction needed
        refresh = self.refresh_tokens.generate_refresh_token(public.id)
        log.info("User logged in", extra={"user_id": public.id, "event": "login"})
        return AuthResultOut(user=public, access_token=access, refresh_token=refresh)

    # ------------------------------------------------------------------ #
    # Tokens
    # ------------------------------------------------------------------ #

    def generate_token(self, user_id: int) -> str:
        """
        Sign an access token from the user's current row and roles.

        :raises NotFoundError: If the user does not exist.
        """
        with self.ro_uow() as uow:
            return self.issuer.issue(user_id, uow)
