"""
Typed errors raised by the service layer.

Routes never build these by hand; they bubble up to the error handler
registered in ``create_app`` which renders them with ``error_response``.
"""


class ServiceError(Exception):
    status = 400

    def __init__(self, code="SERVICE_ERROR", message="Service error", details=None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidState(ServiceError):
    """The requested transition does not apply to the stored state.

    Someone else already acted, or the caller's view is stale. The caller
    should re-fetch and present fresh options; never retry blindly.
    """

    status = 409

    def __init__(self, transition, current_state, message=None, entity=None, code="INVALID_STATE"):
        details = {"transition": transition, "current_state": current_state}
        if entity:
            details["entity"] = entity
        super().__init__(
            code=code,
            message=message or f"Cannot {transition} while {current_state}",
            details=details,
        )
        self.transition = transition
        self.current_state = current_state


class NotFound(ServiceError):
    status = 404

    def __init__(self, entity, entity_id=None):
        super().__init__(
            code="NOT_FOUND",
            message=f"{entity} not found",
            details={"entity": entity, "id": entity_id} if entity_id else {"entity": entity},
        )


class Forbidden(ServiceError):
    status = 403

    def __init__(self, message="You do not have permission to do that", details=None):
        super().__init__(code="FORBIDDEN", message=message, details=details)


class ValidationError(ServiceError):
    status = 422

    def __init__(self, message, field=None):
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            details={"field": field} if field else None,
        )


class StorageFailure(ServiceError):
    status = 503

    def __init__(self, message="Could not save changes, please try again"):
        super().__init__(
            code="STORAGE_FAILURE",
            message=message,
            details={"retryable": True},
        )


class AuthenticationFailed(ServiceError):
    status = 401

    def __init__(self, message="Invalid credentials"):
        super().__init__(code="AUTH_FAILED", message=message)
