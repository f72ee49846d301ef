"""Identity snapshot taken when a credential is resolved."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class Identity:
	"""Immutable view of a user for the lifetime of one connection.

	Profile edits made after resolution are not reflected until the client
	reconnects.
	"""

	user_id: str
	display_name: str
	email: Optional[str] = None
	avatar: Optional[str] = None

	def to_public(self) -> dict:
		return {"userId": self.user_id, "userName": self.display_name}

	def to_author(self) -> dict:
		return {
			"id": self.user_id,
			"name": self.display_name,
			"email": self.email,
			"avatar": self.avatar,
		}

	@classmethod
	def from_record(cls, row) -> "Identity":
		return cls(
			user_id=str(row["id"]),
			display_name=str(row["name"] or ""),
			email=row["email"],
			avatar=row["avatar"],
		)
