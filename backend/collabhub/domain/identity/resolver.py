"""Bearer credential -> Identity resolution.

The resolved Identity is attached to a connection once and is never
re-verified while the connection lives: a revoked or expired credential only
takes effect on the next reconnect.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from jwt import InvalidTokenError

from collabhub.domain.identity.models import Identity
from collabhub.infra import jwt as jwt_helper

logger = logging.getLogger(__name__)


class Unauthenticated(Exception):
	"""The presented credential did not resolve to a known user."""

	def __init__(self, code: str) -> None:
		super().__init__(code)
		self.code = code


class UserLookup(Protocol):
	async def get_identity(self, user_id: str) -> Optional[Identity]:
		...


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def extract_bearer(environ: dict, auth: Optional[dict] = None) -> Optional[str]:
	"""Pull the bearer token from the Socket.IO auth payload or the handshake headers."""
	scope = environ.get("asgi.scope", environ)
	auth_payload = auth if isinstance(auth, dict) else (environ.get("auth") or scope.get("auth") or {})
	token = auth_payload.get("token")
	if token:
		return str(token).strip() or None
	header = _header(scope, "authorization")
	if header and header.lower().startswith("bearer "):
		return header.split(" ", 1)[1].strip() or None
	return None


class IdentityResolver:
	def __init__(self, users: Optional[UserLookup] = None) -> None:
		if users is None:
			from collabhub.domain.identity.repo import UserDirectory

			users = UserDirectory()
		self._users = users

	async def resolve(self, token: Optional[str]) -> Identity:
		if not token:
			raise Unauthenticated("missing_token")
		try:
			claims = jwt_helper.decode_access(token)
		except InvalidTokenError as exc:
			logger.info("access token rejected: %s", exc.__class__.__name__)
			raise Unauthenticated("invalid_token") from None
		user_id = str(claims["sub"]).strip()
		identity = await self._users.get_identity(user_id)
		if identity is None:
			raise Unauthenticated("unknown_user")
		return identity
