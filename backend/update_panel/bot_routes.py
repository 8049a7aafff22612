"""
Managed bot admin API.

Owners register bots with their Discord token (encrypted at rest); running
bots post lifecycle reports (ready / restart / error) authenticated by that
token in the ``X-Bot-Token`` header.
"""

import logging
import secrets
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Request

from update_panel.auth import require_owner
from update_panel.bot_models import BotReport, BotView, CreateBotRequest, ManagedBot, ReportRequest
from update_panel.errors import InvalidInput, NotFound, Unauthorized
from update_panel.release_models import utcnow
from update_panel.token_crypto import mask_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bots", tags=["bots"])


UNREADABLE_TOKEN = "<undecryptable>"


def _masked_token(bot: ManagedBot, cipher) -> str:
    try:
        return mask_token(cipher.decrypt(bot.token))
    except InvalidInput:
        logger.warning(f"Token of bot {bot.id} cannot be decrypted with the current key")
        return UNREADABLE_TOKEN


def _to_view(bot: ManagedBot, cipher) -> BotView:
    return BotView(
        id=bot.id,
        name=bot.name,
        owner_id=bot.owner_id,
        token=_masked_token(bot, cipher),
        notes=bot.notes,
        stats=bot.stats,
        created_at=bot.created_at,
        updated_at=bot.updated_at,
    )


async def _get_bot_or_404(request: Request, bot_id: str) -> ManagedBot:
    bot = await request.app.state.store.get_bot(bot_id)
    if bot is None:
        raise NotFound("Bot not found")
    return bot


# ── Routes ──────────────────────────────────────────────────────────

@router.get("", response_model=List[BotView])
async def list_bots(request: Request, identity: Dict[str, Any] = Depends(require_owner)):
    """List managed bots with masked tokens."""
    cipher = request.app.state.cipher
    return [_to_view(bot, cipher) for bot in await request.app.state.store.list_bots()]


@router.post("", response_model=BotView, status_code=201)
async def create_bot(request: Request, body: CreateBotRequest, identity: Dict[str, Any] = Depends(require_owner)):
    """Register a bot. The token is encrypted before it is stored."""
    cipher = request.app.state.cipher
    bot = ManagedBot(
        name=body.name,
        owner_id=str(identity["id"]),
        token=cipher.encrypt(body.token),
        notes=body.notes,
    )
    await request.app.state.store.save_bot(bot)
    logger.info(f"Registered bot {bot.id} ({bot.name})")
    return _to_view(bot, cipher)


@router.get("/{bot_id}/reports", response_model=List[BotReport])
async def list_reports(request: Request, bot_id: str, limit: int = 50, identity: Dict[str, Any] = Depends(require_owner)):
    await _get_bot_or_404(request, bot_id)
    return await request.app.state.store.list_reports(bot_id, limit)


@router.post("/{bot_id}/report", status_code=201)
async def report(
    request: Request,
    bot_id: str,
    body: ReportRequest,
    x_bot_token: Optional[str] = Header(None),
):
    """Record a lifecycle event sent by the bot itself."""
    state = request.app.state
    bot = await _get_bot_or_404(request, bot_id)
    if not x_bot_token or not secrets.compare_digest(state.cipher.decrypt(bot.token), x_bot_token):
        raise Unauthorized("Invalid bot token")

    now = utcnow()
    bot.stats.last_check = now
    if body.type == "ready":
        bot.stats.last_ready = now
    elif body.type == "restart":
        bot.stats.restarts += 1
    elif body.type == "error":
        bot.stats.errors += 1
    bot.updated_at = now

    await state.store.save_bot(bot)
    await state.store.add_report(BotReport(bot_id=bot.id, type=body.type, payload=body.payload))
    logger.info(f"Bot {bot.id} reported {body.type}")
    return {"ok": True, "stats": bot.stats.model_dump(mode="json", by_alias=True)}
