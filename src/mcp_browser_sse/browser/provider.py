"""
Handle providers: turn validated credentials into a live BrowserSession.

The server only depends on the HandleProvider protocol, so tests (and other
backends) can supply their own.
"""

import asyncio
import logging
from typing import Any, Optional, Protocol

from ..config import Credentials, get_env_config
from ..errors import MissingCredentialsError, ProvisioningError
from ..utils import OperationLog
from .browserbase import BrowserbaseClient
from .driver import create_webdriver
from .instructions import InstructionResolver
from .session import BrowserSession

logger = logging.getLogger(__name__)


class HandleProvider(Protocol):
    async def provision(self, credentials: Credentials) -> Any:
        """Raises ProvisioningError when no handle can be produced."""

    async def release(self, handle: Any) -> None:
        """Idempotent; never raises."""


class BrowserbaseProvider:
    """
    Provisions one remote Browserbase browser per session.

    Args:
        model: Chat model used for act/observe (defaults to OPENAI_MODEL)
    """

    def __init__(self, model: Optional[str] = None):
        self.model = model or get_env_config()["model"]

    def _provision_sync(self, credentials: Credentials) -> BrowserSession:
        client = BrowserbaseClient(credentials.browserbase_api_key, credentials.browserbase_project_id)
        info = client.create_session()
        try:
            driver = create_webdriver(info)
        except Exception as e:
            client.release_session(info.session_id)
            raise ProvisioningError(f"Failed to attach WebDriver to Browserbase session {info.session_id}: {e}") from e

        resolver = InstructionResolver(api_key=credentials.openai_api_key, model=self.model)
        handle = BrowserSession(
            driver,
            resolver=resolver,
            browserbase_session_id=info.session_id,
            operation_log=OperationLog(label=info.session_id),
            browserbase_client=client,
        )
        return handle

    async def provision(self, credentials: Credentials) -> BrowserSession:
        try:
            credentials.require()
        except MissingCredentialsError as e:
            raise ProvisioningError(str(e)) from e
        try:
            handle = await asyncio.to_thread(self._provision_sync, credentials)
        except ProvisioningError:
            raise
        except Exception as e:
            raise ProvisioningError(str(e)) from e
        logger.info(f"Provisioned browser {handle.browserbase_session_id}")
        return handle

    async def release(self, handle: BrowserSession) -> None:
        if handle is None or handle.closed:
            return
        await handle.close()
        client = handle.browserbase_client
        if client is not None and handle.browserbase_session_id:
            await asyncio.to_thread(client.release_session, handle.browserbase_session_id)
        logger.info(f"Released browser {handle.browserbase_session_id}")


__all__ = ["HandleProvider", "BrowserbaseProvider"]
