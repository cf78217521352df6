from fastapi import Depends
from sqlalchemy.orm import Session

from database import get_db
from modules.documents.repositories.document_admin_repository import DocumentAdminRepository
from modules.employees.repositories.employee_repository import EmployeeRepository
from modules.employees.services.employee_service import EmployeeService


def get_employee_service(db: Session = Depends(get_db)) -> EmployeeService:
    return EmployeeService(
        employee_repository=EmployeeRepository(db),
        document_repository=DocumentAdminRepository(db),
    )
