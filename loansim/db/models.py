"""
SQLAlchemy ORM models for saved loan simulations.
"""

from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Float,
    Integer,
    Boolean,
    DateTime,
    Text,
)
from sqlalchemy.orm import declarative_base
import uuid

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


class AuditMixin:
    """Mixin for audit fields on all models."""

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
    created_by = Column(String(255), nullable=True)
    updated_by = Column(String(255), nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)


class Simulation(AuditMixin, Base):
    """A saved loan simulation, owned by one user."""

    __tablename__ = "simulations"

    id = Column(String, primary_key=True, default=generate_uuid)

    # Owner, as supplied by the identity provider
    user_id = Column(String(255), nullable=False, index=True)

    # Loan inputs
    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="PEN")
    annual_rate = Column(Float, nullable=False)  # percent
    rate_type = Column(String(20), default="effective")
    capitalization = Column(Integer, nullable=True)  # nominal rates only
    term_years = Column(Integer, nullable=False)
    grace_type = Column(String(20), default="none")
    grace_months = Column(Integer, default=0)
    bono_amount = Column(Float, default=0)

    # Results
    monthly_payment = Column(Float, nullable=False)
    npv = Column(Float, nullable=True)
    irr = Column(Float, nullable=True)  # annual percent, null when undefined

    # Labels
    bank_name = Column(String(255), nullable=True)
    product_type = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
