import logging
import time
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import get_settings
from create_tables import crear_tablas
from database import SessionLocal

from modules.documents.job import start_reconcile_job
from modules.documents.models import User
from modules.documents.services import LocalObjectStore
from modules.auth.services.auth_service import AuthService
from modules.auth.controllers.auth_controller import router as auth_router
from modules.documents.controllers.document_controller import router as document_router
from modules.documents.controllers.signature_controller import router as signature_router
from modules.documents.controllers.file_controller import router as file_router
from modules.employees.controllers.employee_controller import router as employee_router
from modules.employees.models import Employee

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("payroll_signing")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup logic ---
    logger.info("Iniciando aplicación...")
    crear_tablas()
    app.state.object_store = LocalObjectStore(
        root=settings.storage_root,
        public_base_url=settings.public_base_url,
        secret_key=settings.secret_key,
        algorithm=settings.algorithm,
    )
    scheduler = start_reconcile_job(app.state.object_store)
    logger.info("Job de reconciliación de subidas iniciado")
    if settings.seed_demo_data:
        _crear_datos_prueba()
    yield
    # --- Shutdown logic ---
    scheduler.shutdown(wait=False)
    logger.info("Aplicación detenida")


def _crear_datos_prueba():
    """Crea usuarios de prueba con contraseñas."""
    with SessionLocal() as session:
        if session.query(User).count() > 0:
            logger.info("Datos de prueba ya existen")
            return

        juan = User(
            name="Juan Pérez",
            email="juan@empresa.com",
            password_hash=AuthService.get_password_hash("juan123"),
            employee_id=456,
            is_active=True
        )
        ana = User(
            name="Ana García",
            email="ana@empresa.com",
            password_hash=AuthService.get_password_hash("ana123"),
            employee_id=789,
            is_active=True
        )
        session.add_all([
            juan,
            ana,
            Employee(id=456, name="Juan Pérez", email="juan@empresa.com", department="Operaciones"),
            Employee(id=789, name="Ana García", email="ana@empresa.com", department="Finanzas"),
        ])
        session.commit()

        logger.info("Datos de prueba creados: %s (juan123), %s (ana123)", juan.email, ana.email)


app = FastAPI(
    title="Firma de Cuentas de Cobro",
    description="API para subir, consultar y firmar documentos de nómina",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)


def _loggable_path(path: str) -> str:
    # el token de /files/ es una URL firmada vigente, no va al log
    if path.startswith("/files/"):
        return "/files/<token>"
    return path


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    path = _loggable_path(request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("%s %s failed after %.1f ms", request.method, path, (time.perf_counter() - start) * 1000)
        raise
    logger.info(
        "%s %s -> %d (%.1f ms)",
        request.method, path, response.status_code, (time.perf_counter() - start) * 1000
    )
    return response


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


# Routers
app.include_router(auth_router)
app.include_router(document_router, prefix="/documents", tags=["documents"])
app.include_router(signature_router, prefix="/documents", tags=["documents"])
app.include_router(file_router, prefix="/files", tags=["files"])
app.include_router(employee_router, prefix="/employees", tags=["employees"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
