from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from modules.documents.schemas.document_schemas import DocumentResponse, PaginationMeta


class EmployeeResponse(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    identification_number: Optional[str] = None
    identification_type: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    company_id: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EmployeeStats(BaseModel):
    pending: int
    signed: int


class EmployeeDocuments(BaseModel):
    pending: List[DocumentResponse]
    signed: List[DocumentResponse]


class EmployeeSummaryResponse(EmployeeResponse):
    """Fila del listado: estadísticas y los últimos documentos de cada estado"""
    stats: EmployeeStats
    last_documents: EmployeeDocuments


class EmployeeDetailResponse(EmployeeResponse):
    stats: EmployeeStats
    documents: EmployeeDocuments


class PaginatedEmployeesResponse(BaseModel):
    data: List[EmployeeSummaryResponse]
    pagination: PaginationMeta


class EmployeeUpdateRequest(BaseModel):
    """Campos editables; el id y la empresa los controla nómina"""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    identification_number: Optional[str] = Field(default=None, min_length=1)
    identification_type: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    is_active: Optional[bool] = None
