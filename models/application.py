from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from database import Base


class LoanApplication(Base):
    __tablename__ = "loan_applications"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="submitted", index=True)
    # Free-form checkpoint label; "complete" once every onboarding step is done
    current_step = Column(String(64), nullable=True)
    loan_amount = Column(Numeric(12, 2), nullable=False)
    loan_purpose = Column(Text, nullable=True)
    # Percent per day, e.g. 0.1 means 0.1% of principal per day
    interest_percent_per_day = Column(Numeric(8, 4), nullable=True)
    processing_fee_percent = Column(Numeric(6, 2), nullable=True)
    installment_count = Column(Integer, nullable=False, default=1)
    salary_day = Column(Integer, nullable=True)
    extension_count = Column(Integer, nullable=False, default=0)
    extension_status = Column(String(32), nullable=True)
    post_service_fee = Column(Numeric(12, 2), nullable=True)
    # Authoritative APR computed when terms were committed
    apr = Column(Numeric(8, 2), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(Date, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="applications")
    validation_actions = relationship("ValidationAction", back_populates="application", cascade="all, delete-orphan")
    documents = relationship("UploadedDocument", back_populates="application", cascade="all, delete-orphan")


class ValidationAction(Base):
    __tablename__ = "validation_actions"

    id = Column(String(64), primary_key=True, index=True)
    loan_application_id = Column(
        String(64), ForeignKey("loan_applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action_type = Column(String(64), nullable=False, index=True)
    # need_document payload: {"documents": ["Aadhaar Card", ...]}
    action_details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    application = relationship("LoanApplication", back_populates="validation_actions")


class UploadedDocument(Base):
    __tablename__ = "uploaded_documents"

    id = Column(String(64), primary_key=True, index=True)
    loan_application_id = Column(
        String(64), ForeignKey("loan_applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    document_name = Column(String(256), nullable=False)
    # pending | verified | rejected | other
    upload_status = Column(String(32), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    application = relationship("LoanApplication", back_populates="documents")
