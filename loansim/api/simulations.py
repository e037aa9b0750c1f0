"""
Saved simulation API endpoints.

Every record belongs to the user resolved from the bearer token; users only
ever see their own simulations.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from loansim.api.calculations import LoanInput, simulate
from loansim.auth.dependencies import get_current_user_id
from loansim.calculations import LoanValidationError
from loansim.calculations.amortization import GraceType
from loansim.calculations.engine import Currency, SimulationResult, run_simulation
from loansim.calculations.rates import RateType
from loansim.config import get_settings
from loansim.db.database import get_db
from loansim.db.models import Simulation
from loansim.services.records import extract_records, record_to_parameters

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()


class SimulationCreate(LoanInput):
    """Schema for saving a simulation. Results are recomputed server-side."""

    discount_rate: Optional[float] = None
    bank_name: Optional[str] = None
    product_type: Optional[str] = None
    notes: Optional[str] = ""


class SimulationResponse(BaseModel):
    """Flattened simulation record."""

    id: str
    amount: float
    currency: Optional[str]
    annual_rate: float
    rate_type: Optional[str]
    capitalization: Optional[int]
    term_years: int
    monthly_payment: float
    grace_type: Optional[str]
    grace_months: Optional[int]
    bono_amount: Optional[float]
    bank_name: Optional[str]
    product_type: Optional[str]
    npv: Optional[float]
    irr: Optional[float]
    notes: Optional[str]
    created_at: Optional[str] = None

    class Config:
        from_attributes = True


class SimulationListResponse(BaseModel):
    """Response for listing simulations."""

    simulations: List[SimulationResponse]
    total: int


class ImportResponse(BaseModel):
    """Outcome of a legacy import."""

    imported: List[SimulationResponse]
    skipped: List[Dict[str, Any]]


def simulation_to_response(sim: Simulation) -> SimulationResponse:
    """Convert Simulation model to response schema."""
    return SimulationResponse(
        id=sim.id,
        amount=sim.amount,
        currency=sim.currency,
        annual_rate=sim.annual_rate,
        rate_type=sim.rate_type,
        capitalization=sim.capitalization,
        term_years=sim.term_years,
        monthly_payment=sim.monthly_payment,
        grace_type=sim.grace_type,
        grace_months=sim.grace_months,
        bono_amount=sim.bono_amount,
        bank_name=sim.bank_name,
        product_type=sim.product_type,
        npv=sim.npv,
        irr=sim.irr,
        notes=sim.notes,
        created_at=sim.created_at.isoformat() if sim.created_at else None,
    )


def build_simulation(
    user_id: str,
    result: SimulationResult,
    bank_name: Optional[str] = None,
    product_type: Optional[str] = None,
    notes: Optional[str] = None,
) -> Simulation:
    """Flatten a simulation result into a storable record."""
    params = result.parameters
    rate_type = RateType(params.rate_type)

    return Simulation(
        user_id=user_id,
        amount=params.principal,
        currency=Currency(params.currency).value,
        annual_rate=params.annual_rate,
        rate_type=rate_type.value,
        capitalization=params.capitalization if rate_type == RateType.nominal else None,
        term_years=params.term_years,
        monthly_payment=result.payment,
        grace_type=GraceType(params.grace_type).value,
        grace_months=params.grace_months,
        bono_amount=params.bono_amount,
        bank_name=bank_name,
        product_type=product_type or settings.default_product_type,
        npv=result.appraisal.npv,
        irr=result.appraisal.irr,
        notes=notes,
        created_by=user_id,
        updated_by=user_id,
    )


def get_owned_simulation(db: Session, simulation_id: str, user_id: str) -> Simulation:
    sim = (
        db.query(Simulation)
        .filter(
            Simulation.id == simulation_id,
            Simulation.user_id == user_id,
            Simulation.is_deleted == False,
        )
        .first()
    )

    if not sim:
        raise HTTPException(status_code=404, detail="Simulation not found")

    return sim


@router.get("/", response_model=SimulationListResponse)
async def list_simulations(
    skip: int = 0,
    limit: int = 100,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the current user's simulations, newest first."""
    query = db.query(Simulation).filter(
        Simulation.user_id == user_id,
        Simulation.is_deleted == False,
    )

    total = query.count()
    simulations = (
        query.order_by(Simulation.created_at.desc()).offset(skip).limit(limit).all()
    )

    return SimulationListResponse(
        simulations=[simulation_to_response(s) for s in simulations],
        total=total,
    )


@router.post("/", response_model=SimulationResponse, status_code=201)
async def create_simulation(
    simulation_data: SimulationCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Recompute and save a simulation for the current user."""
    result = simulate(simulation_data, simulation_data.discount_rate)

    db_simulation = build_simulation(
        user_id,
        result,
        bank_name=simulation_data.bank_name,
        product_type=simulation_data.product_type,
        notes=simulation_data.notes,
    )
    db.add(db_simulation)
    db.commit()
    db.refresh(db_simulation)

    logger.info(f"Saved simulation {db_simulation.id} for user {user_id}")

    return simulation_to_response(db_simulation)


@router.post("/import", response_model=ImportResponse, status_code=201)
async def import_simulations(
    payload: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Import simulations exported by an earlier version of the application.

    Records are normalized from whichever naming convention they use and
    recomputed; records the engine rejects are reported as skipped.
    """
    try:
        records = extract_records(payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    imported = []
    skipped = []
    for index, record in enumerate(records):
        try:
            result = run_simulation(
                record_to_parameters(record), settings.default_discount_rate
            )
        except LoanValidationError as e:
            skipped.append({"index": index, "code": e.code, "message": str(e)})
            continue

        db_simulation = build_simulation(
            user_id,
            result,
            bank_name=record["bank_name"],
            product_type=record["product_type"],
            notes=record["notes"],
        )
        db.add(db_simulation)
        imported.append(db_simulation)

    db.commit()
    for db_simulation in imported:
        db.refresh(db_simulation)

    logger.info(
        f"Imported {len(imported)} simulations for user {user_id} "
        f"({len(skipped)} skipped)"
    )

    return ImportResponse(
        imported=[simulation_to_response(s) for s in imported],
        skipped=skipped,
    )


@router.get("/{simulation_id}", response_model=SimulationResponse)
async def get_simulation(
    simulation_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Get one of the current user's simulations."""
    return simulation_to_response(get_owned_simulation(db, simulation_id, user_id))


@router.delete("/{simulation_id}")
async def delete_simulation(
    simulation_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Soft delete a simulation."""
    sim = get_owned_simulation(db, simulation_id, user_id)

    sim.is_deleted = True
    sim.updated_by = user_id
    db.commit()

    return {"deleted": True, "id": simulation_id}
