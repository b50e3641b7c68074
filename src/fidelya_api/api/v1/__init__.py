from fastapi import APIRouter

from .endpoints import (
    health,
    membership,
    redemptions,
)

router = APIRouter()
router.include_router(health.router, tags=["Health"])
router.include_router(membership.router)
router.include_router(redemptions.router)
