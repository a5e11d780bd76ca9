"""Channel naming convention."""
from dataclasses import dataclass
from typing import List, Optional

from foodswipe.models.order import Actor

PUBLIC_FEED = "public-feed"
RIDERS_FEED = "riders"


def user_channel(user_id: str) -> str:
    return f"user-{user_id}"


def restaurant_channel(restaurant_id: str) -> str:
    return f"restaurant-{restaurant_id}"


@dataclass(frozen=True)
class ActorIdentity:
    """Who a real-time connection belongs to."""
    user_id: str
    role: Actor
    restaurant_id: Optional[str] = None


def default_channels(identity: ActorIdentity) -> List[str]:
    """Channels a freshly connected actor listens on."""
    channels = [user_channel(identity.user_id)]
    if identity.role == Actor.RESTAURANT and identity.restaurant_id:
        channels.append(restaurant_channel(identity.restaurant_id))
    elif identity.role == Actor.RIDER:
        channels.append(RIDERS_FEED)
    channels.append(PUBLIC_FEED)
    return channels
