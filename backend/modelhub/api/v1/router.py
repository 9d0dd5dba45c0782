"""API v1 router aggregator.

All v1 endpoint routers are included here under the /api/v1 prefix.
"""

from fastapi import APIRouter

from modelhub.api.v1 import admin, auctions, calls, coins, gigs, tips

router = APIRouter()

# =============================================================================
# Coin economy
# =============================================================================

router.include_router(coins.router, prefix="/coins", tags=["coins"])
router.include_router(tips.router, prefix="/tips", tags=["tips"])
router.include_router(auctions.router, prefix="/auctions", tags=["auctions"])
router.include_router(calls.router, prefix="/calls", tags=["calls"])

# =============================================================================
# Gigs (signed deep links)
# =============================================================================

router.include_router(gigs.router, tags=["gigs"])

# =============================================================================
# Admin
# =============================================================================

router.include_router(admin.router, prefix="/admin", tags=["admin"])
