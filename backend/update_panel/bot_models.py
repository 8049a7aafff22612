"""
Pydantic models for managed bots and their lifecycle reports.
"""

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from update_panel.release_models import CamelModel, utcnow

ReportType = Literal["ready", "restart", "error"]


class BotStats(CamelModel):
    last_ready: Optional[datetime] = Field(default=None, alias="lastReady")
    last_check: Optional[datetime] = Field(default=None, alias="lastCheck")
    restarts: int = 0
    errors: int = 0


class ManagedBot(CamelModel):
    """A bot registered by an owner. ``token`` is always stored encrypted."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    owner_id: str = Field(alias="ownerId")
    token: str
    notes: str = ""
    stats: BotStats = Field(default_factory=BotStats)
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")


class BotReport(CamelModel):
    bot_id: str = Field(alias="botId")
    type: ReportType
    payload: Optional[Any] = None
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")


class CreateBotRequest(BaseModel):
    name: str = Field(min_length=1)
    token: str = Field(min_length=1)
    notes: str = ""


class ReportRequest(BaseModel):
    type: ReportType
    payload: Optional[Any] = None


class BotView(CamelModel):
    """Managed bot as returned by the API, token masked."""
    id: str
    name: str
    owner_id: str = Field(alias="ownerId")
    token: str
    notes: str = ""
    stats: BotStats
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
