# contentcore/api/deps/auth.py
# La autenticación vive fuera del engine: el gateway resuelve al usuario y
# lo reenvía en X-User-Id.
from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status


def _parse_user_id(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isdigit() or int(raw) <= 0:
        return None
    return int(raw)


def get_current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> int:
    if x_user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    uid = _parse_user_id(x_user_id)
    if uid is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid X-User-Id header")
    return uid

