"""
Core middleware package.

- Error handling with sensitive data sanitization
- Structured logging with PII masking
- Bearer JWT authentication
- Policy-table authorization resolver
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
    get_logger,
)

from core.middleware.authentication import (
    AuthenticationMiddleware,
    AuthenticationError,
)

from core.middleware.authorization import (
    Action,
    AccessGrant,
    POLICIES,
    Policy,
    authorize,
    ensure_user_type,
    check_organization_access,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    "get_logger",
    # Authentication
    "AuthenticationMiddleware",
    "AuthenticationError",
    # Authorization
    "Action",
    "AccessGrant",
    "POLICIES",
    "Policy",
    "authorize",
    "ensure_user_type",
    "check_organization_access",
]
