from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class TokenKind(str, Enum):
    """Purpose a confirmation token was issued for."""

    EMAIL_CONFIRMATION = "email_confirmation"
    EMAIL_CHANGE = "email_change"
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True, slots=True)
class ConfirmationClaims:
    """
    Decoded payload of a confirmation token.

    Never persisted: the signed string is stored on the user row instead and
    these claims are re-derived from it on every validation.

    :param sub: User id the token was issued to.
    :param email: User email at issuance time.
    :param token_type: Purpose discriminant.
    :param new_email: Target address; only set for :attr:`TokenKind.EMAIL_CHANGE`.
    :param iat: Issued-at instant (UTC).
    :param exp: Expiry instant (UTC).
    :param jti: Unique token id, so two tokens minted in the same second differ.
    """

    sub: int
    email: str
    token_type: TokenKind
    new_email: str | None
    iat: datetime
    exp: datetime
    jti: str

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "sub": str(self.sub),
            "email": self.email,
            "token_type": self.token_type.value,
            "iat": self.iat,
            "exp": self.exp,
            "jti": self.jti,
        }
        if self.new_email is not None:
            payload["new_email"] = self.new_email
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ConfirmationClaims:
        """Rebuild claims from a verified payload.

        :raises KeyError, ValueError, TypeError: On missing or malformed claims.
        """
        return cls(
            sub=int(payload["sub"]),
            email=str(payload["email"]),
            token_type=TokenKind(payload["token_type"]),
            new_email=payload.get("new_email"),
            iat=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            exp=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            jti=str(payload["jti"]),
        )
