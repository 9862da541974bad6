from __future__ import annotations

from fastapi import APIRouter

from bendrija.modules.identity.api import router as identity_router
from bendrija.modules.residents.api import router as residents_router
from bendrija.modules.slips.api import router as slips_router
from bendrija.modules.vendors.api import router as vendors_router

router = APIRouter()

router.include_router(identity_router, prefix="/api")
router.include_router(residents_router, prefix="/api")
router.include_router(slips_router, prefix="/api")
router.include_router(vendors_router, prefix="/api")


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}
