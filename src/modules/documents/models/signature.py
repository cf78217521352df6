# src/modules/documents/models/signature.py

from sqlalchemy import Column, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from database import Base
from modules.documents.models.document import utcnow
import uuid


class Signature(Base):
    __tablename__ = "signatures"

    id                    = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    document_id           = Column(String(36), ForeignKey("documents.id"), nullable=False, index=True)
    name                  = Column(String, nullable=False)
    identification_number = Column(String, nullable=False)
    identification_type   = Column(String, nullable=True)
    ip                    = Column(String, nullable=False)
    user_agent            = Column(String, nullable=False)
    hash_sign             = Column(String(64), nullable=False)
    signed_at             = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    document = relationship("Document", back_populates="signatures")
