from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import WorkspaceRecord


async def get_workspace(session: AsyncSession, key: str) -> Optional[WorkspaceRecord]:
    result = await session.execute(select(WorkspaceRecord).where(WorkspaceRecord.key == key))
    return result.scalar_one_or_none()


async def upsert_workspace(
    session: AsyncSession,
    key: str,
    payload: Dict[str, Any],
    *,
    commit: bool = True,
) -> WorkspaceRecord:
    record = await get_workspace(session, key)
    if record:
        record.payload = payload
        record.updated_at = datetime.now(timezone.utc)
    else:
        record = WorkspaceRecord(key=key, payload=payload)
    session.add(record)
    if commit:
        await session.commit()
    return record


async def delete_workspace(session: AsyncSession, key: str, *, commit: bool = True) -> None:
    await session.execute(delete(WorkspaceRecord).where(WorkspaceRecord.key == key))
    if commit:
        await session.commit()
