"""Service layer shared by every front end."""

from ubml.service.validation import (
    ValidationService,
    get_service,
    init_service,
    reset_service,
)

__all__ = ["ValidationService", "get_service", "init_service", "reset_service"]
