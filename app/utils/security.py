"""
Backoffice authentication and table-side order throttling
"""

import secrets
import time
from collections import defaultdict
from typing import Optional

from fastapi import HTTPException, Depends, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import settings

# Rate limit key -> timestamps of recent orders
rate_limiter = defaultdict(list)

RATE_WINDOW_SECONDS = 60

security = HTTPBearer()

def verify_admin_token(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Only staff holding the backoffice token may manage events, stock and orders"""
    if not secrets.compare_digest(credentials.credentials, settings.ADMIN_TOKEN):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid backoffice token"
        )
    return credentials.credentials

def rate_limit_check(key: str, limit: Optional[int] = None) -> bool:
    """Sliding-window limit on orders sent under one key"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    now = time.time()
    recent = [t for t in rate_limiter[key] if t > now - RATE_WINDOW_SECONDS]
    if len(recent) >= limit:
        rate_limiter[key] = recent
        return False

    recent.append(now)
    rate_limiter[key] = recent
    return True

def get_client_ip(request: Request) -> str:
    """Extract client IP from request"""
    # Reverse proxies put the original client first
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"

def order_rate_key(request: Request, table_number: int) -> str:
    """Throttle each device separately at each table"""
    return f"{get_client_ip(request)}:table-{table_number}"
