"""
Discord OAuth login and owner-only authorization.

Owner checks go through an authorizer stored on ``app.state`` so routes can
be exercised without a real OAuth flow.
"""

import logging
import secrets
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlencode

import aiohttp
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from update_panel.errors import Unauthorized

logger = logging.getLogger(__name__)

DISCORD_API = "https://discord.com/api/v10"
DISCORD_AUTHORIZE_URL = "https://discord.com/oauth2/authorize"

router = APIRouter(tags=["auth"])


class OwnerAuthorizer:
    """``is_authorized(identity)`` predicate: identity id is a configured owner."""

    def __init__(self, owner_ids: Iterable[str]):
        self.owner_ids = {str(owner_id) for owner_id in owner_ids}

    def __call__(self, identity: Optional[Dict[str, Any]]) -> bool:
        return self.is_authorized(identity)

    def is_authorized(self, identity: Optional[Dict[str, Any]]) -> bool:
        if not identity:
            return False
        return str(identity.get("id", "")) in self.owner_ids


def get_identity(request: Request) -> Optional[Dict[str, Any]]:
    """The Discord user stored in the session at login, if any."""
    return request.session.get("user")


def require_owner(request: Request, identity: Optional[Dict[str, Any]] = Depends(get_identity)) -> Dict[str, Any]:
    authorizer = request.app.state.authorizer
    if not authorizer(identity):
        logger.warning(f"Forbidden {request.method} {request.url.path} for user {identity and identity.get('id')}")
        raise Unauthorized("Owner access required")
    return identity


# ---------- OAuth routes ----------

@router.get("/login")
async def login(request: Request):
    settings = request.app.state.settings
    state = secrets.token_urlsafe(16)
    request.session["oauth_state"] = state
    query = urlencode({
        "client_id": settings.discord_client_id,
        "redirect_uri": settings.callback_url,
        "response_type": "code",
        "scope": "identify",
        "state": state,
    })
    return RedirectResponse(f"{DISCORD_AUTHORIZE_URL}?{query}", status_code=302)


@router.get("/callback")
async def callback(request: Request, code: Optional[str] = None, state: Optional[str] = None):
    expected_state = request.session.pop("oauth_state", None)
    if not code or not state or state != expected_state:
        logger.warning("OAuth callback rejected: missing code or state mismatch")
        return RedirectResponse("/", status_code=302)

    try:
        user = await _fetch_discord_user(request.app.state.settings, code)
    except (aiohttp.ClientError, KeyError) as e:
        logger.error(f"Discord OAuth exchange failed: {e}", exc_info=True)
        return RedirectResponse("/", status_code=302)

    request.session["user"] = {
        "id": user["id"],
        "username": user.get("username"),
        "avatar": user.get("avatar"),
    }
    logger.info(f"User {user['id']} logged in")
    return RedirectResponse("/dashboard", status_code=302)


@router.get("/logout")
async def logout(request: Request):
    request.session.clear()
    return RedirectResponse("/", status_code=302)


async def _fetch_discord_user(settings, code: str) -> Dict[str, Any]:
    timeout = aiohttp.ClientTimeout(total=10)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        async with session.post(
            f"{DISCORD_API}/oauth2/token",
            data={
                "client_id": settings.discord_client_id,
                "client_secret": settings.discord_client_secret,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": settings.callback_url,
            },
        ) as resp:
            resp.raise_for_status()
            token = (await resp.json())["access_token"]

        async with session.get(
            f"{DISCORD_API}/users/@me",
            headers={"Authorization": f"Bearer {token}"},
        ) as resp:
            resp.raise_for_status()
            return await resp.json()
