"""
Object storage for PDFs.

`ObjectStore` is the contract the document workflow depends on; every
operation is a remote call that may fail with `StorageError`.
`LocalObjectStore` keeps the blobs on disk under a root directory and hands
out time-limited URLs as signed JWTs.
"""
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from jose import JWTError, jwt

from modules.documents.exceptions import StorageError

logger = logging.getLogger(__name__)

FILE_TOKEN_TYPE = "file"


class ObjectStore(ABC):

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str = "application/pdf") -> None:
        ...

    @abstractmethod
    def download(self, path: str) -> bytes:
        ...

    @abstractmethod
    def delete(self, path: str) -> None:
        ...

    @abstractmethod
    def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def signed_url(self, path: str, ttl_seconds: int = 3600) -> str:
        """
        Genera una URL de acceso temporal.

        Args:
            path: Clave del objeto.
            ttl_seconds: Segundos hasta que la URL expira.
        """
        ...


class LocalObjectStore(ObjectStore):
    """Blob store on the local filesystem."""

    def __init__(self, root: str, public_base_url: str, secret_key: str, algorithm: str = "HS256"):
        self._root = Path(root).resolve()
        self._public_base_url = public_base_url.rstrip("/")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        if not path:
            raise StorageError("Empty object path")
        target = (self._root / path).resolve()
        if target != self._root and self._root not in target.parents:
            raise StorageError(f"Object path escapes the storage root: {path}")
        return target

    def upload(self, path: str, data: bytes, content_type: str = "application/pdf") -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            # escribir en temporal y renombrar, para no dejar archivos a medias
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, target)
        except OSError as e:
            raise StorageError(f"Failed to upload {path}: {e}") from e
        logger.debug("Stored %d bytes at %s", len(data), path)

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to download {path}: {e}") from e

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}") from e

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def signed_url(self, path: str, ttl_seconds: int = 3600) -> str:
        self._resolve(path)
        expire = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        try:
            token = jwt.encode(
                {"path": path, "typ": FILE_TOKEN_TYPE, "exp": expire},
                self._secret_key,
                algorithm=self._algorithm,
            )
        except JWTError as e:
            raise StorageError(f"Failed to generate signed URL: {e}") from e
        return f"{self._public_base_url}/files/{token}"

    def resolve_token(self, token: str) -> Optional[str]:
        """Verifica el token de una URL firmada y retorna la ruta del objeto"""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError:
            return None
        if payload.get("typ") != FILE_TOKEN_TYPE:
            return None
        return payload.get("path")
