from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(256), nullable=True)
    phone = Column(String(32), nullable=True, unique=True)
    # active | on_hold | deleted
    status = Column(String(32), nullable=False, default="active", index=True)
    # pending | eligible | not_eligible
    eligibility_status = Column(String(32), nullable=False, default="pending")
    hold_reason = Column(Text, nullable=True)
    # age | income_tier | payment_mode | cooling_period
    hold_basis = Column(String(32), nullable=True)
    # NULL while on hold means the hold is permanent
    hold_until = Column(DateTime(timezone=True), nullable=True)
    loan_limit = Column(Numeric(12, 2), nullable=False, default=0)
    employment_type = Column(String(32), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    income_range = Column(String(32), nullable=True)
    payment_mode = Column(String(32), nullable=True)
    graduation_status = Column(String(32), nullable=True)
    graduation_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    applications = relationship("LoanApplication", back_populates="user", cascade="all, delete-orphan")


class LoanLimitTier(Base):
    __tablename__ = "loan_limit_tiers"

    id = Column(String(64), primary_key=True, index=True)
    tier_name = Column(String(128), nullable=False)
    income_range = Column(String(32), unique=True, nullable=False, index=True)
    min_salary = Column(Numeric(12, 2), nullable=False, default=0)
    # NULL means open-ended ("and above")
    max_salary = Column(Numeric(12, 2), nullable=True)
    loan_limit = Column(Numeric(12, 2), nullable=False, default=0)
    hold_permanent = Column(Boolean, nullable=False, default=False)
    tier_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
