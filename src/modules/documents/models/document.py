from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Boolean, Numeric, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from enum import Enum as PyEnum
from database import Base


def utcnow():
    return datetime.now(timezone.utc)


class DocumentStatus(PyEnum):
    PENDING = "PENDING"
    SIGNED = "SIGNED"
    INVALIDATED = "INVALIDATED"


class Document(Base):
    __tablename__ = 'documents'

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    employee_id = Column(Integer, nullable=False, index=True)

    # Fechas del periodo en formato interno MM-DD-YYYY
    payroll_period_start = Column(String(10), nullable=False)
    payroll_period_end = Column(String(10), nullable=False)

    pdf_original_path = Column(String, nullable=False, default="")
    pdf_signed_path = Column(String, nullable=True)
    status = Column(Enum(DocumentStatus), nullable=False, default=DocumentStatus.PENDING)
    original_hash = Column(String(64), nullable=False)
    signed_hash = Column(String(64), nullable=True)
    amount = Column(Numeric(14, 2), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    signed_at = Column(DateTime(timezone=True), nullable=True)

    superseded_by = Column(String(36), ForeignKey('documents.id'), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    user = relationship("User", back_populates="documents")

    signatures = relationship("Signature", back_populates="document", order_by="Signature.signed_at")

    __table_args__ = (
        # Llave de idempotencia: un solo documento activo por tupla
        Index(
            "uq_documents_idempotency",
            "user_id", "payroll_period_start", "payroll_period_end", "original_hash",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
        Index("ix_documents_user_period", "user_id", "payroll_period_start", "payroll_period_end"),
    )
