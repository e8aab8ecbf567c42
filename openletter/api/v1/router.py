"""API v1 router combining all route modules."""

from fastapi import APIRouter

from openletter.api.v1 import health, letters, signatures

api_router = APIRouter()

# Include health check routes (no prefix)
api_router.include_router(health.router)

# Letters: public reads and signing, owner-gated writes
api_router.include_router(
    letters.router,
    prefix="/letters",
    tags=["letters"],
)

# Signature confirmation links (no auth - verified via signed token)
api_router.include_router(
    signatures.router,
    prefix="/signatures",
    tags=["signatures"],
)
