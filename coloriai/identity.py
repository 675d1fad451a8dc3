import logging
from typing import Any, Dict, Optional

import requests

from .config import Settings
from .errors import IdentityProviderError, UserNotFound

logger = logging.getLogger("coloriai.identity")


def display_name(user: Optional[Dict[str, Any]]) -> str:
    if not user:
        return "User"
    return user.get("username") or user.get("first_name") or "User"


class IdentityClient:
    """Thin wrapper over the hosted identity provider's backend REST API."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None, timeout: float = 5):
        self.base_url = settings.clerk_api_url
        self.secret_key = settings.clerk_secret_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str) -> requests.Response:
        if not self.secret_key:
            raise IdentityProviderError("CLERK_SECRET_KEY is not configured")
        try:
            return self.session.request(
                method,
                f"{self.base_url}{path}",
                headers={
                    "Authorization": f"Bearer {self.secret_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Identity provider %s %s failed: %s", method, path, e)
            raise IdentityProviderError(str(e)) from e

    def get_user(self, user_id: str) -> Dict[str, Any]:
        r = self._request("GET", f"/users/{user_id}")
        if r.status_code == 404:
            raise UserNotFound(f"User {user_id} not found")
        if not r.ok:
            raise IdentityProviderError(f"Failed to fetch user data ({r.status_code})")
        return r.json()

    def delete_user(self, user_id: str) -> None:
        r = self._request("DELETE", f"/users/{user_id}")
        if r.status_code == 404:
            raise UserNotFound(f"User {user_id} not found")
        if not r.ok:
            try:
                detail = r.json()
            except ValueError:
                detail = r.text
            logger.error("Identity provider refused delete of %s: %s", user_id, detail)
            raise IdentityProviderError("Failed to delete user")
        logger.info("User %s deleted at identity provider", user_id)

    def is_admin(self, user_id: str) -> bool:
        user = self.get_user(user_id)
        return (user.get("public_metadata") or {}).get("role") == "admin"
