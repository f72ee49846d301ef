"""Read-only access to the identity store."""

from __future__ import annotations

from typing import Optional

from collabhub.domain.identity.models import Identity
from collabhub.infra.postgres import get_pool

# Public profile columns only; the password hash is never selected.
_PUBLIC_PROFILE_SQL = "SELECT id, name, email, avatar FROM users WHERE id = $1"


class UserDirectory:
	async def get_identity(self, user_id: str) -> Optional[Identity]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(_PUBLIC_PROFILE_SQL, user_id)
		if row is None:
			return None
		return Identity.from_record(row)
