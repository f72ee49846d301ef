"""Authentication helpers for FastAPI endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from collabhub.domain.identity import Identity, IdentityResolver, Unauthenticated

_bearer_scheme = HTTPBearer(auto_error=False)
_resolver: Optional[IdentityResolver] = None


def get_resolver() -> IdentityResolver:
	global _resolver
	if _resolver is None:
		_resolver = IdentityResolver()
	return _resolver


async def get_current_identity(
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
	resolver: IdentityResolver = Depends(get_resolver),
) -> Identity:
	"""Resolve the caller from a Bearer JWT; same rules as the socket handshake."""
	token = credentials.credentials if credentials and credentials.scheme.lower() == "bearer" else None
	try:
		return await resolver.resolve(token)
	except Unauthenticated:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from None
