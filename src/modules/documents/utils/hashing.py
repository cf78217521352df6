import hashlib


def sha256_hex(data: bytes) -> str:
    """SHA-256 del contenido, en hexadecimal"""
    return hashlib.sha256(data).hexdigest()
