"""
Security utilities.

Provides JWT handling, password hashing, invitation tokens, PII masking and
structured audit logging.
"""

import json
import logging
import secrets
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional, Set, TypedDict

import bcrypt
import jwt

from core.config import settings
from core.utils.datetime import now

logger = logging.getLogger("security.audit")


class JWTPayload(TypedDict, total=False):
    userId: int
    exp: int
    iat: int


class AuditAction(str, Enum):
    """Audit log action types."""
    VIEW = "VIEW"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    TRANSITION = "TRANSITION"
    ASSIGN = "ASSIGN"
    ACCESS_DENIED = "ACCESS_DENIED"


class ResourceType(str, Enum):
    """Resource types for audit logging."""
    ORGANIZATION = "ORGANIZATION"
    JOB_REQUEST = "JOB_REQUEST"
    CANDIDATE = "CANDIDATE"
    INTERVIEW = "INTERVIEW"
    TICKET = "TICKET"
    INVITATION = "INVITATION"
    SITE_STAFF = "SITE_STAFF"
    USER = "USER"


# PII fields that should be masked in logs
PII_FIELDS: Set[str] = {
    "email", "phone", "first_name", "last_name", "full_name", "name",
    "linkedin_url", "portfolio_url", "resume_path", "password",
}


# ---------- JWT ---------- #

def create_access_token(
    user_id: int,
    expires_minutes: Optional[int] = None,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> str:
    """Issue a bearer token carrying ``userId``."""
    issued = now()
    expires = issued + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "userId": user_id,
        "iat": int(issued.timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(
        payload,
        secret or settings.jwt_secret_key,
        algorithm=algorithm or settings.jwt_algorithm,
    )


def verify_jwt_token(token: str, secret: str, algorithm: str = "HS256") -> JWTPayload:
    """
    Decode and verify a bearer token.

    Raises:
        jwt.ExpiredSignatureError: token expired
        jwt.InvalidTokenError: signature or structure invalid
    """
    return jwt.decode(
        token,
        secret,
        algorithms=[algorithm],
        options={"require": ["exp"]},
    )


# ---------- Passwords & tokens ---------- #

def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, encoded: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), encoded.encode("utf-8"))
    except ValueError:
        return False


def generate_invitation_token() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


# ---------- Audit ---------- #

def mask_pii(data: Any, depth: int = 0) -> Any:
    """
    Recursively mask PII fields in data structures.

    Args:
        data: Data to mask (dict, list, or primitive)
        depth: Current recursion depth (max 10)

    Returns:
        Data with PII fields masked
    """
    if depth > 10:
        return "[MAX_DEPTH]"

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if str(key).lower() in PII_FIELDS:
                if isinstance(value, str) and len(value) > 0:
                    # Partial masking: show first char and length indicator
                    masked[key] = f"{value[0]}***[{len(value)}]"
                else:
                    masked[key] = "[MASKED]"
            else:
                masked[key] = mask_pii(value, depth + 1)
        return masked
    elif isinstance(data, list):
        return [mask_pii(item, depth + 1) for item in data[:5]]  # Limit list items
    else:
        return data


def log_audit_event(
    action: AuditAction,
    resource_type: ResourceType,
    resource_id: Optional[int] = None,
    user_id: Optional[int] = None,
    organization_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
    contains_pii: bool = False,
) -> Dict[str, Any]:
    """
    Emit a structured audit line to the ``security.audit`` logger.

    The persisted trail lives in the activity_logs table; this line is for
    log shipping and SIEM ingestion.
    """
    event = {
        "timestamp": now().isoformat(),
        "event_type": "AUDIT",
        "action": action.value,
        "resource_type": resource_type.value,
        "resource_id": str(resource_id) if resource_id is not None else None,
        "user_id": user_id,
        "organization_id": organization_id,
        "contains_pii": contains_pii,
        "details": mask_pii(details) if details and contains_pii else details,
    }
    logger.info(json.dumps(event, default=str))
    return event
