"""
HTTP Basic guard for the admin routes.

Missing credentials get a 401 challenge. Wrong credentials are passed on
as authorized=False and rejected by the service layer with a 403.
"""

import secrets
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from ..config import Config

security = HTTPBasic(auto_error=False, realm="Admin Area")


def admin_authorized(
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
) -> bool:
    """True when the request carries the configured admin credentials."""
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": 'Basic realm="Admin Area"'},
        )

    user_ok = secrets.compare_digest(
        credentials.username.encode("utf-8"), Config.admin_user().encode("utf-8")
    )
    password_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"), Config.admin_password().encode("utf-8")
    )
    return user_ok and password_ok
