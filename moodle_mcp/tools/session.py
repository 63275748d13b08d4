"""
Process-wide Moodle session.

One client and one user identity are shared by every tool invocation.
The identity is fetched once before the server accepts calls and is
never refreshed.
"""

import logging
from typing import Optional

from config.settings import Settings

from ..moodle.client import MoodleClient
from ..moodle.models import UserIdentity
from ..resolution.resolver import EntityResolver
from ..submission.workflow import SubmissionWorkflow

logger = logging.getLogger(__name__)


class MoodleSession:
    """
    Session context handed to the tool handlers.

    Attributes:
        client: Shared Moodle client
        user: Identity of the token's user
        settings: Loaded application settings
        resolver: Name resolver bound to the client
        workflow: Submission workflow bound to the client
    """

    def __init__(self, client: MoodleClient, user: UserIdentity, settings: Settings):
        self.client = client
        self.user = user
        self.settings = settings
        self.resolver = EntityResolver(client)
        self.workflow = SubmissionWorkflow(client)

    def __repr__(self) -> str:
        return f"MoodleSession(user_id={self.user.id}, client={self.client!r})"

    def close(self) -> None:
        """Release the client's connection pool. Safe to call more than once."""
        self.client.close()
        logger.info("Moodle session closed")


def open_session(settings: Settings, client: Optional[MoodleClient] = None) -> MoodleSession:
    """
    Build the client and fetch the user identity.

    Args:
        settings: Application settings
        client: Pre-built client, mainly for tests

    Returns:
        Ready-to-use session

    Raises:
        RemoteError: If the identity cannot be fetched; the client is closed
    """
    if client is None:
        client = MoodleClient.from_config(settings.moodle)

    try:
        user = client.get_site_info()
    except Exception:
        client.close()
        raise

    logger.info(f"Authenticated as {user.display_name} (ID: {user.id})")
    return MoodleSession(client=client, user=user, settings=settings)
