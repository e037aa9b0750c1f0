"""
API routes for the loan simulator.
"""

from fastapi import APIRouter

from loansim.api import calculations, simulations

router = APIRouter()

# Include sub-routers
router.include_router(calculations.router, prefix="/calculate", tags=["calculations"])
router.include_router(simulations.router, prefix="/simulations", tags=["simulations"])
