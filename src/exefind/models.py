"""Data models for exefind."""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ExecutableEntry(BaseModel):
    """A discovered executable file."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Base name of the file, including extension")
    path: str = Field(..., description="Absolute filesystem path")


class CacheStatus(BaseModel):
    """Snapshot of the cache file state."""

    path: str = Field(..., description="Location of the cache file")
    exists: bool = Field(False, description="Whether the cache file exists")
    modified_at: Optional[datetime] = Field(None, description="Last modification time")
    age: Optional[timedelta] = Field(None, description="Time since last modification")
    stale: bool = Field(True, description="Whether the cache needs a refresh")

    @property
    def age_human(self) -> str:
        """Human-readable age string."""
        if self.age is None:
            return "unknown"
        seconds = int(self.age.total_seconds())
        if seconds < 0:
            return "in the future"
        if seconds >= 3600:
            return f"{seconds / 3600:.1f} h"
        elif seconds >= 60:
            return f"{seconds // 60} min"
        else:
            return f"{seconds} s"
