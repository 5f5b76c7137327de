import os
import secrets

from dotenv import load_dotenv
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

load_dotenv()

security = HTTPBasic()

ADMIN_BASIC_USER = os.getenv("ADMIN_BASIC_USER", "")
ADMIN_BASIC_PASS = os.getenv("ADMIN_BASIC_PASS", "")


def require_admin_basic_auth(
    credentials: HTTPBasicCredentials = Depends(security),
) -> str:
    """Returns the acting admin id (the basic-auth username)."""
    if not ADMIN_BASIC_USER or not ADMIN_BASIC_PASS:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server missing ADMIN_BASIC_USER/ADMIN_BASIC_PASS configuration",
        )

    username_ok = secrets.compare_digest(credentials.username, ADMIN_BASIC_USER)
    password_ok = secrets.compare_digest(credentials.password, ADMIN_BASIC_PASS)

    if not (username_ok and password_ok):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username


def require_customer(x_customer_id: str = Header("", alias="X-Customer-Id")) -> str:
    # Customer sessions are handled upstream; the gateway forwards the id.
    customer_id = x_customer_id.strip()
    if not customer_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing customer identity")
    return customer_id
