"""Pydantic schemas for API requests and responses."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RunCreate(BaseModel):
    """Run request."""
    prompt: str = Field(min_length=1)


class RunStarted(BaseModel):
    generation: int
    status: str


class HistorySelect(BaseModel):
    """Snapshot selection; null returns to live mode."""
    id: Optional[str] = None


class FileSelect(BaseModel):
    path: str


class FileUpdate(BaseModel):
    """File update request."""
    path: str
    content: str


class FileEntry(BaseModel):
    """File entry in the active file system."""
    path: str
    language: str
    size: int
    content: Optional[str] = None


class FileListing(BaseModel):
    read_only: bool
    current_file: Optional[str] = None
    files: List[FileEntry] = Field(default_factory=list)


class PluginRunResponse(BaseModel):
    plugin_id: str
    comments: List[Dict[str, Any]] = Field(default_factory=list)
    mutated_files: List[str] = Field(default_factory=list)
