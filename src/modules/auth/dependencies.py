import hmac
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from config import Settings, get_settings

logger = logging.getLogger(__name__)

internal_security = HTTPBearer(auto_error=False)

def verify_internal_api_key(
    credentials: HTTPAuthorizationCredentials = Depends(internal_security),
    settings: Settings = Depends(get_settings)
):
    """Solo los servicios internos (nómina) pueden subir documentos"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No internal API key provided"
        )
    if not settings.internal_api_key:
        logger.error("PAYROLL_INTERNAL_API_KEY is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal authentication not configured"
        )
    if not hmac.compare_digest(credentials.credentials, settings.internal_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid internal API key"
        )
    return True
