# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .star_repository import StarRepository
from .reward_repository import (
    AdWatchRepository,
    SocialShareRepository,
    ReferralRepository,
    SharedContentRepository,
)

__all__ = [
    "BaseRepository",
    "StarRepository",
    "AdWatchRepository",
    "SocialShareRepository",
    "ReferralRepository",
    "SharedContentRepository",
]
