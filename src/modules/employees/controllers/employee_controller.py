import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from modules.auth.dependencies import verify_internal_api_key
from modules.documents.dependencies import http_error
from modules.documents.exceptions import DocumentError
from modules.employees.dependencies import get_employee_service
from modules.employees.schemas.employee_schemas import (
    EmployeeDetailResponse, EmployeeResponse, EmployeeUpdateRequest, PaginatedEmployeesResponse
)
from modules.employees.services.employee_service import EmployeeService

logger = logging.getLogger(__name__)

# Datos de todos los empleados: solo para el back office de nómina (API key interna)
router = APIRouter(
    tags=["employees"],
    dependencies=[Depends(verify_internal_api_key)]
)

MAX_LIMIT = 50


@router.get("", response_model=PaginatedEmployeesResponse)
def list_employees(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_LIMIT),
    search: Optional[str] = Query(None, max_length=100, description="Nombre, email o identificación"),
    service: EmployeeService = Depends(get_employee_service)
):
    try:
        return service.list_employees(page, limit, search)
    except DocumentError as e:
        logger.warning("Listing employees failed: %s", e)
        raise http_error(e)


@router.get("/{employee_id}", response_model=EmployeeDetailResponse)
def get_employee(employee_id: int, service: EmployeeService = Depends(get_employee_service)):
    """Empleado con sus estadísticas y sus documentos activos pendientes y firmados."""
    try:
        return service.get_employee(employee_id)
    except DocumentError as e:
        raise http_error(e)


@router.put("/{employee_id}", response_model=EmployeeResponse)
def update_employee(
    employee_id: int,
    payload: EmployeeUpdateRequest,
    service: EmployeeService = Depends(get_employee_service)
):
    try:
        return service.update_employee(employee_id, payload)
    except DocumentError as e:
        logger.warning("Update of employee %s failed: %s", employee_id, e)
        raise http_error(e)
