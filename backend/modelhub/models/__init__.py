"""SQLAlchemy ORM models for Modelhub.

All models are exported from this module for convenient imports:
    from modelhub.models import Actor, CoinBalance, Auction, ...

Models are organized by domain:
- user.py: User (auth identity)
- actor.py: Actor (actor identity), ModelProfile, FanProfile, BrandProfile
- coins.py: CoinBalance, CoinTransaction (ledger)
- auction.py: Auction, AuctionBid (escrow)
- offer.py: Offer, OfferResponse (gigs)
- call.py: VideoCallSession
"""

from modelhub.models.actor import Actor, ActorType, BrandProfile, FanProfile, ModelProfile
from modelhub.models.auction import Auction, AuctionBid
from modelhub.models.base import Base, TimestampMixin
from modelhub.models.call import VideoCallSession
from modelhub.models.coins import CoinBalance, CoinTransaction
from modelhub.models.offer import Offer, OfferResponse
from modelhub.models.user import User

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    # Identity
    "User",
    "Actor",
    "ActorType",
    "ModelProfile",
    "FanProfile",
    "BrandProfile",
    # Coins
    "CoinBalance",
    "CoinTransaction",
    # Marketplace
    "Auction",
    "AuctionBid",
    "Offer",
    "OfferResponse",
    "VideoCallSession",
]
