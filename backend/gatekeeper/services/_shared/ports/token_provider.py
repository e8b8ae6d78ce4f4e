from __future__ import annotations

from datetime import timedelta
from typing import Any, Protocol


class TokenProvider(Protocol):
    """Signs access tokens and decodes them back into their claims.

    ``additional_claims`` may not redefine registered claims (``sub``,
    ``exp`` and so on); adapters raise ``ValueError`` when asked to.
    """

    def create_access_token(
        self,
        *,
        identity: int | str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str: ...

    def decode(self, token: str) -> dict[str, Any]: ...
