from __future__ import annotations

import jwt

from chat_client.application.dto.identity import Identity
from chat_client.application.exceptions import ForbiddenError, ValidationError
from chat_client.domain.value_objects.enums import SenderRole


class JwtIdentityProvider:
    """Read user id and role from the access token issued by the backend.

    The signature is not verified here; the backend verifies it on the
    ``join`` handshake and on every REST call.
    """

    def __init__(self, token: str | None) -> None:
        self._token = token

    async def current(self) -> Identity:
        if not self._token:
            raise ValidationError("Please login again")
        try:
            payload = jwt.decode(self._token, options={"verify_signature": False})
        except jwt.PyJWTError as exc:
            raise ValidationError(f"Malformed access token: {exc}") from exc

        role_raw = payload.get("role", "")
        if role_raw not in SenderRole.__members__.values():
            raise ForbiddenError("Chat is available to students and faculty only")
        try:
            user_id = int(payload["id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError("Access token has no user id") from exc
        return Identity(user_id=user_id, role=SenderRole(role_raw), token=self._token)
