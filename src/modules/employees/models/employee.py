from sqlalchemy import Column, Integer, String, DateTime, Boolean
from database import Base
from modules.documents.models.document import utcnow


class Employee(Base):
    __tablename__ = 'employees'

    # El id lo asigna el sistema de nómina; documents.employee_id apunta aquí
    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True, index=True)
    identification_number = Column(String, nullable=True, index=True)
    identification_type = Column(String, nullable=True)
    department = Column(String, nullable=True)
    position = Column(String, nullable=True)
    company_id = Column(Integer, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
