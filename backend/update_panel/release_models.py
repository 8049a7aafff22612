"""
Pydantic models for the release registry, poll stats and the public API.

Field names are snake_case in Python and camelCase on the wire and on disk.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ReleaseModel(CamelModel):
    """A single published artifact."""
    version: str
    filename: str
    notes: str = ""
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")


class RegistryModel(CamelModel):
    """All releases plus the version advertised to polling bots."""
    latest: Optional[str] = None
    items: List[ReleaseModel] = Field(default_factory=list)

    def find(self, version: str) -> Optional[ReleaseModel]:
        for item in self.items:
            if item.version == version:
                return item
        return None


class TrashEntry(CamelModel):
    """A deleted release, kept for the record."""
    version: str
    filename: str
    notes: str = ""
    deleted_at: datetime = Field(default_factory=utcnow, alias="deletedAt")


class BotRecord(CamelModel):
    """Last poll seen from one bot installation."""
    bot_version: str = Field(alias="botVersion")
    last_check: datetime = Field(default_factory=utcnow, alias="lastCheck")
    last_notified_for_version: Optional[str] = Field(default=None, alias="lastNotifiedForVersion")


class StatsModel(CamelModel):
    """Poll counter and per-bot telemetry.

    ``downloads`` counts polls of /api/version, not completed downloads.
    """
    downloads: int = 0
    bots: Dict[str, BotRecord] = Field(default_factory=dict)


class PollSummary(CamelModel):
    total_bots: int = Field(alias="totalBots")
    up_to_date: int = Field(alias="upToDate")
    outdated: int


class VersionResponse(BaseModel):
    """Response shape for the public version endpoint polled by bots."""
    version: Optional[str] = None
    download: Optional[str] = None
    message: str


class RevertResponse(BaseModel):
    ok: bool
    latest: Optional[str] = None
    error: Optional[str] = None
