"""
IdentityService
===============

Account workflows on the ``User`` aggregate that follow registration:

- Email confirmation
- Password reset (request + confirm) and authenticated password change
- Email change (request + confirm) with an audit trail
- Profile retrieval
- Account administration: list, create, update and delete users

Every workflow runs in its own read-write unit of work and re-reads the user
row first. Workflows that send mail do so before commit, so a failed dispatch
leaves no stored token behind.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from gatekeeper.models.user import User
from gatekeeper.services._shared.base import BaseService
from gatekeeper.services._shared.errors import (
    AuthorizationError,
    FieldIssue,
    InternalError,
    NotFoundError,
    ValidationError,
    violates,
)
from gatekeeper.services.auth.dto import RegisterIn, UserPublicOut
from gatekeeper.services.confirmation.dto import TokenKind
from gatekeeper.services.confirmation.service import ConfirmationTokenService
from gatekeeper.services.emails.service import EmailsService
from gatekeeper.services.identity.dto import (
    ChangePasswordIn,
    EmailChangeIn,
    ResetPasswordIn,
    UpdateUserIn,
)
from gatekeeper.services.refresh.service import RefreshTokenService
from gatekeeper.services.roles.dto import RoleOut
from gatekeeper.services.roles.service import UserRolesService
from gatekeeper.uow.base import UnitOfWork

log = logging.getLogger(__name__)

USERNAME_TAKEN = FieldIssue("already_exists", "users.errors.username_already_exists")
EMAIL_TAKEN = FieldIssue("already_exists", "users.errors.user_already_exists")


def _email_taken() -> ValidationError:
    return ValidationError.single("email", "already_exists", "users.errors.email_already_exists")


def account_conflict(exc: IntegrityError) -> Exception:
    """Map a lost uniqueness race on ``users`` to the field that collided."""
    errors: dict[str, list[FieldIssue]] = {}
    if violates(exc, "uq_users_username", "users.username"):
        errors["username"] = [USERNAME_TAKEN]
    if violates(exc, "uq_users_email", "users.email"):
        errors["email"] = [EMAIL_TAKEN]
    if errors:
        return ValidationError(errors)
    log.error("Unexpected integrity error on users", exc_info=exc)
    return InternalError()


class IdentityService(BaseService):
    """
    Application service for account maintenance.

    Responsibilities
    ----------------
    - Redeem confirmation tokens against the value stored on the user row.
    - Issue reset and email-change tokens and mail them.
    - Keep ``users_email_history`` in sync with confirmed changes.
    """

    def __init__(
        self,
        *,
        confirmation_tokens: ConfirmationTokenService,
        refresh_tokens: RefreshTokenService,
        user_roles: UserRolesService,
        emails: EmailsService,
    ) -> None:
        self.confirmation = confirmation_tokens
        self.refresh_tokens = refresh_tokens
        self.user_roles = user_roles
        self.emails = emails

    @staticmethod
    def _load(uow: UnitOfWork, user_id: int, *, lock: bool = False) -> User:
        user = uow.users.get_for_update(user_id) if lock else uow.users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    # --------------------------------------------------------------------- #
    # Email confirmation
    # --------------------------------------------------------------------- #

    def confirm_email(self, token: str) -> None:
        """
        Mark the email of the token's subject as confirmed.

        :raises AuthenticationError: Token signature invalid or expired.
        :raises NotFoundError: User no longer exists.
        :raises ValidationError: Email already confirmed.
        :raises AuthorizationError: Wrong token kind, superseded or expired.
        """
        claims = self.confirmation.validate_token(token)
        with self.rw_uow() as uow:
            user = self._load(uow, claims.sub, lock=True)
            if user.is_email_confirmed:
                raise ValidationError.single(
                    "email", "already_confirmed", "auth.errors.email_already_confirmed"
                )
            self.confirmation.validate_stored_token(
                token,
                user.email_confirmation_token,
                user.email_confirmation_token_expiry,
                TokenKind.EMAIL_CONFIRMATION,
            )
            user.is_email_confirmed = True
            user.clear_email_confirmation_token()
        log.info("Email confirmed", extra={"user_id": claims.sub, "event": "email_confirmed"})

    # --------------------------------------------------------------------- #
    # Password lifecycle
    # --------------------------------------------------------------------- #

    def request_password_reset(self, email: str) -> None:
        """
        Store a fresh reset token on the user and email it.

        A newer request supersedes any earlier token.

        :raises NotFoundError: No account uses ``email``. The HTTP layer
            answers the same way either way.
        :raises EmailDispatchError: Mail refused; the token is not kept.
        """
        with self.rw_uow() as uow:
            user = uow.users.get_by_email(email)
            if user is None:
                raise NotFoundError("User", "email")
            now = self.now()
            token = self.confirmation.generate_password_reset_token(user.id, user.email, now=now)
            user.set_password_reset_token(token, self.confirmation.expiry(now))
            uow.users.flush()
            self.emails.send_password_reset_email(
                to=user.email, username=user.username, token=token
            )
            user_id = user.id
        log.info("Password reset requested", extra={"user_id": user_id, "event": "reset_request"})

    def reset_password(self, dto: ResetPasswordIn) -> None:
        """
        Replace the password using a stored reset token.

        The token is cleared, so it cannot be redeemed twice, and every
        refresh token of the user is revoked.

        :raises AuthenticationError: Token signature invalid or expired.
        :raises AuthorizationError: Wrong kind, already used or superseded.
        """
        claims = self.confirmation.validate_token(dto.token)
        with self.rw_uow() as uow:
            user = self._load(uow, claims.sub, lock=True)
            self.confirmation.validate_stored_token(
                dto.token,
                user.password_reset_token,
                user.password_reset_token_expiry,
                TokenKind.PASSWORD_RESET,
            )
            user.password = dto.new_password
            user.clear_password_reset_token()
            revoked = self.refresh_tokens.invalidate_all_user_tokens(user.id, uow=uow)
        log.info(
            "Password reset completed",
            extra={"user_id": claims.sub, "event": "password_reset", "deleted": revoked},
        )

    def change_password(self, dto: ChangePasswordIn) -> None:
        """
        Change the password of a signed-in user.

        :raises ValidationError: ``current_password`` does not match.
        """
        with self.rw_uow() as uow:
            user = self._load(uow, dto.user_id)
            if not user.verify_password(dto.current_password):
                raise ValidationError.single(
                    "current_password", "invalid", "users.errors.invalid_current_password"
                )
            user.password = dto.new_password
        log.info("Password changed", extra={"user_id": dto.user_id, "event": "password_change"})

    # --------------------------------------------------------------------- #
    # Email change
    # --------------------------------------------------------------------- #

    def request_email_change(self, dto: EmailChangeIn) -> None:
        """
        Start moving the account to ``dto.new_email``.

        The confirmation goes to the *current* address so the owner approves
        the move.

        :raises ValidationError: Same as current, or already used by another account.
        :raises EmailDispatchError: Mail refused; nothing is kept.
        """
        new_email = dto.new_email.strip().lower()
        with self.rw_uow() as uow:
            user = self._load(uow, dto.user_id)
            if new_email == user.email:
                raise ValidationError.single(
                    "email", "same_email", "users.errors.new_email_same_as_current"
                )
            if uow.users.exists_by_email(new_email, exclude_id=user.id):
                raise _email_taken()
            now = self.now()
            token = self.confirmation.generate_email_change_token(
                user.id, user.email, new_email, now=now
            )
            user.set_email_change_token(token, self.confirmation.expiry(now), new_email)
            uow.users.flush()
            self.emails.send_email_change_email(
                to=user.email, username=user.username, new_email=new_email, token=token
            )
        log.info("Email change requested", extra={"user_id": dto.user_id, "event": "email_change"})

    def confirm_email_change(self, token: str) -> None:
        """
        Apply a pending email change.

        The new address comes from the signed token, which is the source of
        truth; ``pending_email`` is cleared along with the token.

        :raises AuthorizationError: Wrong kind, superseded, expired, or no
            ``new_email`` claim.
        :raises ValidationError: The address was taken in the meantime.
        """
        claims = self.confirmation.validate_token(token)
        try:
            with self.rw_uow() as uow:
                user = self._load(uow, claims.sub, lock=True)
                self.confirmation.validate_stored_token(
                    token,
                    user.email_change_token,
                    user.email_change_token_expiry,
                    TokenKind.EMAIL_CHANGE,
                )
                if not claims.new_email:
                    raise AuthorizationError("auth.errors.invalid_token")
                target = claims.new_email.strip().lower()
                if uow.users.exists_by_email(target, exclude_id=user.id):
                    raise _email_taken()

                old_email = user.email
                user.email = target
                user.clear_email_change_token()
                uow.users.flush()
                uow.email_history.record(user_id=user.id, old_email=old_email, new_email=target)
        except IntegrityError as exc:
            if violates(exc, "uq_users_email", "users.email"):
                raise _email_taken() from exc
            raise
        log.info("Email changed", extra={"user_id": claims.sub, "event": "email_changed"})

    # --------------------------------------------------------------------- #
    # Retrieval
    # --------------------------------------------------------------------- #

    def get_user(self, user_id: int) -> UserPublicOut:
        """
        Retrieve a user's public profile with current roles.

        :raises NotFoundError: If user does not exist.
        """
        with self.ro_uow() as uow:
            user = self._load(uow, user_id)
            roles = [r.name for r in self.user_roles.get_user_roles(user.id, uow=uow)]
            return UserPublicOut.from_model(user, roles)

    # --------------------------------------------------------------------- #
    # Administration
    # --------------------------------------------------------------------- #

    def create_user_in_transaction(self, uow: UnitOfWork, dto: RegisterIn) -> tuple[User, RoleOut]:
        """
        Insert an unconfirmed account with the default role and mail its
        confirmation link, staging everything on the caller's unit of work.

        :returns: The flushed user and the role it was granted.
        :raises ValidationError: ``username`` and/or ``email`` already taken.
        :raises InternalError: Role catalog not seeded.
        :raises EmailDispatchError: Confirmation email refused.
        """
        errors: dict[str, list[FieldIssue]] = {}
        if uow.users.exists_by_username(dto.username):
            errors["username"] = [USERNAME_TAKEN]
        if uow.users.exists_by_email(dto.email):
            errors["email"] = [EMAIL_TAKEN]
        if errors:
            raise ValidationError(errors)

        user = User(username=dto.username, email=dto.email, is_email_confirmed=False)
        user.password = dto.password
        user.is_active = True
        uow.users.add(user)
        role = self.user_roles.assign_user_role_in_transaction(uow, user.id)

        now = self.now()
        token = self.confirmation.generate_email_confirmation_token(user.id, user.email, now=now)
        user.set_email_confirmation_token(token, self.confirmation.expiry(now))
        uow.users.flush()
        self.emails.send_confirmation_email(to=user.email, username=user.username, token=token)
        return user, role

    def create_user(self, dto: RegisterIn) -> UserPublicOut:
        """
        Create an account on someone's behalf.

        Same rules as self-registration, minus the session: no tokens are
        issued and the owner still has to confirm the address.
        """
        try:
            with self.rw_uow() as uow:
                user, role = self.create_user_in_transaction(uow, dto)
                out = UserPublicOut.from_model(user, [role.name])
        except IntegrityError as exc:
            raise account_conflict(exc) from exc
        log.info("User created", extra={"user_id": out.id, "event": "user_created"})
        return out

    def list_users(self) -> list[UserPublicOut]:
        """Every account in id order, each with its current roles."""
        with self.ro_uow() as uow:
            users = uow.users.list()
            roles = uow.user_roles.role_names_by_user([u.id for u in users])
            return [UserPublicOut.from_model(u, roles.get(u.id, [])) for u in users]

    def update_user(self, user_id: int, dto: UpdateUserIn) -> UserPublicOut:
        """
        Rename an account or move it to another address.

        Fields left as ``None`` are unchanged. A new address is recorded in
        ``users_email_history`` and supersedes any pending email change; its
        confirmation state is kept.

        :raises NotFoundError: Unknown user.
        :raises ValidationError: ``username`` and/or ``email`` owned by another account.
        """
        username = dto.username.strip() if dto.username is not None else None
        email = dto.email.strip().lower() if dto.email is not None else None
        try:
            with self.rw_uow() as uow:
                user = self._load(uow, user_id, lock=True)
                errors: dict[str, list[FieldIssue]] = {}
                if username and uow.users.exists_by_username(username, exclude_id=user.id):
                    errors["username"] = [USERNAME_TAKEN]
                if email and uow.users.exists_by_email(email, exclude_id=user.id):
                    errors["email"] = [EMAIL_TAKEN]
                if errors:
                    raise ValidationError(errors)

                if username:
                    user.username = username
                if email and email != user.email:
                    old_email = user.email
                    user.email = email
                    user.clear_email_change_token()
                    uow.users.flush()
                    uow.email_history.record(user_id=user.id, old_email=old_email, new_email=email)
                uow.users.flush()
                roles = [r.name for r in self.user_roles.get_user_roles(user.id, uow=uow)]
                out = UserPublicOut.from_model(user, roles)
        except IntegrityError as exc:
            raise account_conflict(exc) from exc
        log.info("User updated", extra={"user_id": user_id, "event": "user_updated"})
        return out

    def delete_user(self, user_id: int) -> None:
        """
        Delete an account with its sessions, role grants and email history.

        Dependent rows are removed explicitly so the outcome does not hinge
        on the database enforcing ``ON DELETE CASCADE``.

        :raises NotFoundError: Unknown user.
        """
        with self.rw_uow() as uow:
            user = self._load(uow, user_id, lock=True)
            sessions = uow.refresh_tokens.delete_all_for_user(user.id)
            uow.user_roles.delete_for_user(user.id)
            uow.email_history.delete_for_user(user.id)
            uow.users.delete(user)
        log.info(
            "User deleted",
            extra={"user_id": user_id, "event": "user_deleted", "deleted": sessions},
        )
