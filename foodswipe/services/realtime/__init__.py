"""Real-time pub/sub client."""
from foodswipe.services.realtime.channels import (
    PUBLIC_FEED,
    RIDERS_FEED,
    ActorIdentity,
    default_channels,
    restaurant_channel,
    user_channel,
)
from foodswipe.services.realtime.client import ChannelHandle, RealtimeClient
from foodswipe.services.realtime.transport import ChannelTransport, RedisChannelTransport

__all__ = [
    "ActorIdentity", "ChannelHandle", "ChannelTransport", "RealtimeClient", "RedisChannelTransport",
    "PUBLIC_FEED", "RIDERS_FEED", "default_channels", "restaurant_channel", "user_channel",
]
