from typing import Optional

from passlib.context import CryptContext


_password_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return _password_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    # Social-only accounts carry no password hash
    if not hashed_password:
        return False
    return _password_context.verify(plain_password, hashed_password)


def hash_code(code: str) -> str:
    """Hash a short one-time code before it goes into a shared cache."""
    return _password_context.hash(code)


def verify_code(code: str, code_hash: str) -> bool:
    return _password_context.verify(code, code_hash)
