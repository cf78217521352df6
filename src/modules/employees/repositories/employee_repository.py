import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from modules.documents.exceptions import StoreError
from modules.employees.models.employee import Employee

logger = logging.getLogger(__name__)


class EmployeeRepository:
    """Lectura y edición de la tabla `employees`."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def get_employee_by_id(self, employee_id: int) -> Optional[Employee]:
        try:
            return self.db.query(Employee).filter(Employee.id == employee_id).one_or_none()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to get employee %s: %s", employee_id, e)
            raise StoreError("Could not read employee") from e

    def list_employees(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None
    ) -> Tuple[List[Employee], int]:
        """Una página de empleados ordenada por nombre, y el total que cumple el filtro."""
        query = self.db.query(Employee)
        term = (search or "").strip()
        if term:
            query = query.filter(
                or_(
                    Employee.name.icontains(term, autoescape=True),
                    Employee.email.icontains(term, autoescape=True),
                    Employee.identification_number.icontains(term, autoescape=True),
                )
            )

        try:
            total = query.count()
            rows = (
                query.order_by(Employee.name, Employee.id)
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to list employees (search=%r): %s", term, e)
            raise StoreError("Could not list employees") from e
        return rows, total

    def update_employee(self, employee_id: int, changes: Dict[str, Any]) -> Optional[Employee]:
        employee = self.get_employee_by_id(employee_id)
        if employee is None:
            return None

        for field, value in changes.items():
            setattr(employee, field, value)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to update employee %s: %s", employee_id, e)
            raise StoreError("Could not update employee") from e

        self.db.refresh(employee)
        logger.info("Updated employee %s fields %s", employee_id, sorted(changes))
        return employee
