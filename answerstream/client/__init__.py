"""
Streaming chat client.

The transport (StreamConsumer) and per-request state (StreamSession) are
usable on their own; ChatClient and the CLI wire them to a terminal UI.
"""

from .config import ClientConfig
from .conversation import Conversation
from .errors import NetworkFailure, ServerError, StreamError, StreamProcessingError, StreamTimeout
from .stream_consumer import StreamConsumer, StreamHandle
from .stream_session import SessionState, StreamSession

__all__ = [
    'ClientConfig', 'Conversation',
    'StreamError', 'StreamTimeout', 'NetworkFailure', 'ServerError',
    'StreamProcessingError',
    'StreamConsumer', 'StreamHandle', 'SessionState', 'StreamSession',
]
