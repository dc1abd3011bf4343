"""Options handed to the identity framework: adapter, providers, callbacks."""
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from discord_clone import schemas
from discord_clone.adapter import Adapter
from discord_clone.settings import Settings

logger = logging.getLogger(__name__)


class OAuthProvider(BaseModel):
    id: str
    name: str
    client_id: str
    client_secret: str
    authorization_url: str
    token_url: str
    userinfo_url: str
    scope: str = ""

def github_provider(client_id: str, client_secret: str) -> OAuthProvider:
    return OAuthProvider(
        id="github",
        name="GitHub",
        client_id=client_id,
        client_secret=client_secret,
        authorization_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",
        userinfo_url="https://api.github.com/user",
        scope="read:user user:email",
    )


def session_callback(session: Dict[str, Any], user: schemas.User) -> Dict[str, Any]:
    """Expose the database user id on the client-facing session."""
    return {
        **session,
        "user": {
            **(session.get("user") or {}),
            "id": user.id,
        },
    }


class AuthOptions(BaseModel):
    adapter: Adapter
    providers: List[OAuthProvider] = []
    session_callback: Callable[[Dict[str, Any], schemas.User], Dict[str, Any]] = session_callback

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def get_provider(self, provider_id: str) -> Optional[OAuthProvider]:
        return next((p for p in self.providers if p.id == provider_id), None)


def build_auth_options(settings: Settings, adapter: Adapter) -> AuthOptions:
    providers = []
    if settings.AUTH_GITHUB_ID and settings.AUTH_GITHUB_SECRET:
        providers.append(github_provider(settings.AUTH_GITHUB_ID, settings.AUTH_GITHUB_SECRET))
    else:
        logger.warning("GitHub credentials not configured; no OAuth providers registered")
    return AuthOptions(adapter=adapter, providers=providers)
