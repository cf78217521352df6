import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from config import get_settings
from modules.documents.models.user import User

logger = logging.getLogger(__name__)

settings = get_settings()
SECRET_KEY = settings.secret_key
ALGORITHM = settings.algorithm

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthFailureReason(Enum):
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    USER_INACTIVE = "USER_INACTIVE"
    PROVIDER_ERROR = "PROVIDER_ERROR"


@dataclass(frozen=True)
class AuthResult:
    user: Optional[User] = None
    reason: Optional[AuthFailureReason] = None

    @property
    def ok(self) -> bool:
        return self.user is not None and self.reason is None


class AuthService:

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verifica si la contraseña coincide con el hash"""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Genera hash de la contraseña"""
        return pwd_context.hash(password)

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        """Autentica usuario por email y contraseña"""
        result = IdentityProvider(db).verify_password(email, password)
        return result.user if result.ok else None

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
        """Crea token JWT"""
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.now(timezone.utc) + expires_delta
        else:
            expire = datetime.now(timezone.utc) + timedelta(minutes=15)
        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
        return encoded_jwt

    @staticmethod
    def verify_token(token: str) -> Optional[str]:
        """Verifica token JWT y retorna el email del usuario"""
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
            email: str = payload.get("sub")
            if email is None:
                return None
            return email
        except JWTError:
            return None

    @staticmethod
    def get_current_user(db: Session, token: str) -> Optional[User]:
        """Obtiene usuario actual desde token"""
        email = AuthService.verify_token(token)
        if email is None:
            return None
        user = db.query(User).filter(User.email == email).first()
        if user is None or not user.is_active:
            return None
        return user


class IdentityProvider:
    """
    Verifica credenciales y devuelve un resultado con un motivo explícito,
    para que quien llama distinga una contraseña incorrecta de cualquier
    otro fallo sin leer mensajes de error.
    """

    def __init__(self, db: Session):
        self.db = db

    def verify_password(self, email: str, password: str) -> AuthResult:
        try:
            user = self.db.query(User).filter(User.email == email).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Identity lookup failed for %s: %s", email, e)
            return AuthResult(reason=AuthFailureReason.PROVIDER_ERROR)

        if user is None:
            return AuthResult(reason=AuthFailureReason.INVALID_CREDENTIALS)

        try:
            valid = AuthService.verify_password(password, user.password_hash)
        except (ValueError, TypeError) as e:
            logger.error("Password hash for %s could not be verified: %s", email, e)
            return AuthResult(reason=AuthFailureReason.PROVIDER_ERROR)

        if not valid:
            return AuthResult(reason=AuthFailureReason.INVALID_CREDENTIALS)
        if not user.is_active:
            return AuthResult(reason=AuthFailureReason.USER_INACTIVE)
        return AuthResult(user=user)
