# contentcore/services/passwords.py
# Contraseñas de páginas/posts protegidos (no son cuentas de usuario)
from __future__ import annotations

from typing import Optional

from passlib.context import CryptContext

_pwd = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__truncate_error=False,
)


def hash_password(plain: str) -> str:
    return _pwd.hash(plain)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    """Unprotected items (no stored hash) never match."""
    if not hashed or plain is None:
        return False
    return _pwd.verify(plain, hashed)
