from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func

from database import Base


class KYCRecord(Base):
    __tablename__ = "kyc_records"

    id = Column(String(64), primary_key=True, index=True)
    loan_application_id = Column(
        String(64), ForeignKey("loan_applications.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    kyc_status = Column(String(32), nullable=False, default="pending")
    rekyc_required = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class PostDisbursalProgress(Base):
    __tablename__ = "post_disbursal_progress"

    id = Column(String(64), primary_key=True, index=True)
    loan_application_id = Column(
        String(64), ForeignKey("loan_applications.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    current_step = Column(Integer, nullable=False, default=0)
    selfie_captured = Column(Boolean, nullable=False, default=False)
    selfie_verified = Column(Boolean, nullable=False, default=False)
    agreement_signed = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class BankStatementRecord(Base):
    __tablename__ = "bank_statement_records"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    loan_application_id = Column(
        String(64), ForeignKey("loan_applications.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # pending | verified | rejected
    status = Column(String(32), nullable=False, default="pending")
    # not_started | in_progress | done
    verification_status = Column(String(32), nullable=False, default="not_started")
    user_status = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
