from datetime import datetime, timezone
from typing import Any, Dict

from sqlmodel import Column, DateTime, Field, JSON, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkspaceRecord(SQLModel, table=True):
    __tablename__ = "workspaces"

    key: str = Field(primary_key=True, index=True)
    payload: Dict[str, Any] = Field(sa_column=Column(JSON, default=dict, nullable=False))
    updated_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow),
    )
