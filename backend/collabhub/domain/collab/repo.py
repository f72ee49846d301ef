"""Postgres-backed collaborators: message store and project membership."""

from __future__ import annotations

import json
from typing import Optional, Sequence

import ulid

from collabhub.domain.collab import models
from collabhub.domain.identity.models import Identity
from collabhub.infra.postgres import get_pool

_INSERT_MESSAGE_SQL = """
INSERT INTO messages (id, project_id, user_id, content, type, attachments, timestamp)
VALUES ($1, $2, $3, $4, $5, $6::jsonb, now())
"""

_SELECT_MESSAGE_SQL = """
SELECT m.id, m.project_id, m.content, m.type, m.attachments, m.timestamp,
       u.id AS author_id, u.name AS author_name, u.email AS author_email, u.avatar AS author_avatar
FROM messages m
JOIN users u ON u.id = m.user_id
WHERE m.id = $1
"""


def _row_to_message(row) -> models.ChatMessage:
	raw = row["attachments"] or []
	if isinstance(raw, str):
		raw = json.loads(raw)
	return models.ChatMessage(
		id=str(row["id"]),
		project_id=str(row["project_id"]),
		content=row["content"],
		type=row["type"],
		author=Identity(
			user_id=str(row["author_id"]),
			display_name=str(row["author_name"] or ""),
			email=row["author_email"],
			avatar=row["author_avatar"],
		),
		attachments=tuple(
			models.Attachment(filename=item.get("filename"), url=item.get("url"), type=item.get("type"))
			for item in raw
		),
		timestamp=row["timestamp"],
	)


class PostgresMessageStore:
	async def create_message(
		self,
		*,
		project_id: str,
		author_id: str,
		content: str,
		type: str,
		attachments: Sequence[models.Attachment] = (),
	) -> str:
		message_id = ulid.new().str
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				_INSERT_MESSAGE_SQL,
				message_id,
				project_id,
				author_id,
				content,
				type,
				json.dumps([attachment.to_dict() for attachment in attachments]),
			)
		return message_id

	async def get_message(self, message_id: str) -> Optional[models.ChatMessage]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(_SELECT_MESSAGE_SQL, message_id)
		return _row_to_message(row) if row else None


class ProjectMembershipRepository:
	async def is_member(self, project_id: str, user_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			found = await conn.fetchval(
				"SELECT 1 FROM project_members WHERE project_id = $1 AND user_id = $2",
				project_id,
				user_id,
			)
		return found is not None
