"""
Live match updates: WebSocket channel relay and the publisher used by the web app.
"""
from .relay import CHANNEL_KINDS, ChannelRelay, channel_for
from .publisher import RelayPublisher

__all__ = [
    "CHANNEL_KINDS",
    "ChannelRelay",
    "channel_for",
    "RelayPublisher",
]
