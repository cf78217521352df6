import logging
from typing import Optional

from modules.documents.exceptions import NotFoundError, ValidationError
from modules.documents.models.document import DocumentStatus
from modules.documents.repositories.document_admin_repository import DocumentAdminRepository
from modules.documents.schemas.document_schemas import DocumentResponse, create_pagination_meta
from modules.employees.models.employee import Employee
from modules.employees.repositories.employee_repository import EmployeeRepository
from modules.employees.schemas.employee_schemas import (
    EmployeeDetailResponse, EmployeeDocuments, EmployeeResponse, EmployeeStats,
    EmployeeSummaryResponse, EmployeeUpdateRequest, PaginatedEmployeesResponse
)

logger = logging.getLogger(__name__)

LAST_DOCUMENTS_IN_LIST = 3
DOCUMENTS_IN_DETAIL = 100

# columnas NOT NULL: se pueden omitir, pero no enviar como null
_REQUIRED_FIELDS = ("name", "is_active")


class EmployeeService:
    """Consulta de empleados con el resumen de sus documentos, y edición de sus datos."""

    def __init__(self, employee_repository: EmployeeRepository, document_repository: DocumentAdminRepository):
        self.employee_repository = employee_repository
        self.document_repository = document_repository

    def list_employees(self, page: int = 1, limit: int = 10, search: Optional[str] = None) -> PaginatedEmployeesResponse:
        if page < 1:
            raise ValidationError("Page must be a positive integer")
        if limit < 1:
            raise ValidationError("Limit must be a positive integer")

        employees, total = self.employee_repository.list_employees(page, limit, search)
        data = [
            EmployeeSummaryResponse(
                **EmployeeResponse.model_validate(employee).model_dump(),
                stats=self._stats(employee.id),
                last_documents=self._documents(employee.id, LAST_DOCUMENTS_IN_LIST),
            )
            for employee in employees
        ]
        return PaginatedEmployeesResponse(data=data, pagination=create_pagination_meta(total, page, limit))

    def get_employee(self, employee_id: int) -> EmployeeDetailResponse:
        employee = self._get(employee_id)
        return EmployeeDetailResponse(
            **EmployeeResponse.model_validate(employee).model_dump(),
            stats=self._stats(employee.id),
            documents=self._documents(employee.id, DOCUMENTS_IN_DETAIL),
        )

    def update_employee(self, employee_id: int, request: EmployeeUpdateRequest) -> EmployeeResponse:
        changes = request.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")
        for field in _REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null")

        employee = self.employee_repository.update_employee(employee_id, changes)
        if employee is None:
            raise NotFoundError("Employee", str(employee_id))
        return EmployeeResponse.model_validate(employee)

    def _get(self, employee_id: int) -> Employee:
        employee = self.employee_repository.get_employee_by_id(employee_id)
        if employee is None:
            raise NotFoundError("Employee", str(employee_id))
        return employee

    def _stats(self, employee_id: int) -> EmployeeStats:
        stats = self.document_repository.get_employee_document_stats(employee_id)
        return EmployeeStats(pending=stats.pending, signed=stats.signed)

    def _documents(self, employee_id: int, limit: int) -> EmployeeDocuments:
        def last(status):
            docs = self.document_repository.get_employee_last_documents(employee_id, status, limit)
            return [DocumentResponse.from_record(doc) for doc in docs]

        return EmployeeDocuments(pending=last(DocumentStatus.PENDING), signed=last(DocumentStatus.SIGNED))
