"""Where the signed-in user comes from."""

import logging
from typing import Optional, Protocol

import httpx
from pydantic import ValidationError
from typing_extensions import runtime_checkable

from memory_agent.client.http import request_with_retry
from memory_agent.config import MemoryAgentSettings
from memory_agent.errors import MalformedInput
from memory_agent.models import UserIdentity

logger = logging.getLogger(__name__)

GET_USER_PATH = "/api/extension/get-user"


@runtime_checkable
class IdentityProvider(Protocol):
    async def get_current_user(self) -> Optional[UserIdentity]:
        """
        Resolve the currently signed-in user.

        Returns:
            The identity, or None if nobody is signed in

        Raises:
            RemoteUnavailable: If the identity service cannot be reached
        """
        ...


class StaticIdentityProvider:
    """Always reports the same identity (or nobody)."""

    def __init__(self, identity: Optional[UserIdentity] = None):
        self.identity = identity

    async def get_current_user(self) -> Optional[UserIdentity]:
        return self.identity


class HttpIdentityProvider:
    """Asks the web application who is signed in. A 401 means nobody."""

    def __init__(
        self,
        base_url: str,
        settings: Optional[MemoryAgentSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or MemoryAgentSettings()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url, timeout=self.settings.request_timeout_seconds
        )

    async def get_current_user(self) -> Optional[UserIdentity]:
        response = await request_with_retry(
            self.client,
            "GET",
            GET_USER_PATH,
            retries=self.settings.http_retries,
            backoff_base=self.settings.http_backoff_base_seconds,
            backoff_max=self.settings.http_backoff_max_seconds,
            allowed_statuses={401},
        )
        if response.status_code == 401:
            logger.debug("No user signed in")
            return None

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedInput(f"Identity response is not JSON: {e}") from e

        if not isinstance(body, dict):
            raise MalformedInput("Unexpected identity response shape")

        user = body.get("user")
        if not body.get("success") or not isinstance(user, dict) or not user.get("email"):
            return None
        try:
            return UserIdentity.model_validate(user)
        except ValidationError as e:
            raise MalformedInput(f"Invalid identity in response: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
