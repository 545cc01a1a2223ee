"""Error taxonomy shared by the services and the HTTP layer."""

from typing import List, Optional


class ServiceError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[str]] = None):
        self.message = message or self.message
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors is not None:
            body["errors"] = self.errors
        return body


class MissingFields(ServiceError):
    status_code = 400

    def __init__(self, fields: List[str]):
        super().__init__(f"Missing required fields: {', '.join(fields)}", errors=list(fields))
        self.fields = list(fields)


class ValidationError(ServiceError):
    status_code = 400
    message = "Validation error"

    def __init__(self, errors: List[str]):
        super().__init__(errors=list(errors))


class NotFound(ServiceError):
    status_code = 404
    message = "Not found"


class InvalidCredentials(ServiceError):
    status_code = 400
    message = "Invalid credentials"


class InvalidInvitation(ServiceError):
    status_code = 400
    message = "Invalid or used invitation code"


class DuplicateUser(ServiceError):
    status_code = 400
    message = "User already exists"


class InvalidUpdate(ServiceError):
    status_code = 400
    message = "Invalid updates"


class Forbidden(ServiceError):
    status_code = 403
    message = "Not authorized"


class InternalError(ServiceError):
    status_code = 500
