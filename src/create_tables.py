# create_tables.py
import logging
from database import engine, Base
# Importa todos los modelos para que se registren con Base
from modules.documents.models import Document, Signature, User
from modules.employees.models import Employee

logger = logging.getLogger(__name__)

def crear_tablas(bind=engine):
    """Crea todas las tablas en la base de datos"""
    logger.info("Tablas a crear: %s", list(Base.metadata.tables.keys()))
    Base.metadata.create_all(bind=bind)

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    crear_tablas()
