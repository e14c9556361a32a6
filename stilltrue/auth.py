from fastapi import Header, HTTPException
from typing import Optional
import hmac
import os


def require_admin(x_admin_token: Optional[str] = Header(None)) -> None:
    """Admin-token dependency. Open when ADMIN_TOKEN is unset."""
    expected = os.getenv("ADMIN_TOKEN")
    if not expected:
        return
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=401, detail="unauthorized")
