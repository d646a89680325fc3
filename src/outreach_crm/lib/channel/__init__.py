"""Channel library — the shared real-time progress connection.

Public API:
    - ProgressChannel: Socket.IO client multiplexing progress events
    - ChannelHandle: Protocol implemented by ProgressChannel and test fakes
    - PROGRESS_EVENTS: Event names dispatched to listeners
"""

from outreach_crm.lib.channel.client import (
    PROGRESS_EVENTS,
    ChannelHandle,
    ErrorListener,
    ProgressChannel,
    ProgressHandler,
)

__all__ = [
    "PROGRESS_EVENTS",
    "ChannelHandle",
    "ErrorListener",
    "ProgressChannel",
    "ProgressHandler",
]
