"""Process-wide progress channel lifecycle.

The channel is created once by ``init_channel`` and shared by every
consumer until ``shutdown_channel`` closes it.  Individual watchers never
close it.
"""

from loguru import logger

from outreach_crm.core.config import Settings
from outreach_crm.lib.channel import ProgressChannel

_channel: ProgressChannel | None = None


def get_channel() -> ProgressChannel:
    """Return the process-wide progress channel.

    Raises:
        RuntimeError: If the channel has not been initialized.
    """
    if _channel is None:
        msg = "Progress channel not initialized. Call init_channel() first."
        raise RuntimeError(msg)
    return _channel


def init_channel(settings: Settings) -> ProgressChannel:
    """Create the channel (once) and start connecting.

    Calling this again returns the existing channel; a second connection
    is never opened.  Must be called from a running event loop.

    Args:
        settings: Client settings providing the channel URL and credentials.

    Returns:
        The shared progress channel.
    """
    global _channel  # noqa: PLW0603
    if _channel is None:
        _channel = ProgressChannel(
            settings.socket_url,
            path=settings.socket_path,
            manager_id=settings.manager_id,
            reconnection_delay=settings.reconnection_delay,
            connect_timeout=settings.socket_connect_timeout,
        )
        logger.debug("Progress channel created for {}", settings.socket_url)
    return _channel.connect(settings.api_token)


async def shutdown_channel() -> None:
    """Close the process-wide channel if one exists."""
    global _channel  # noqa: PLW0603
    if _channel is not None:
        await _channel.close()
        _channel = None
