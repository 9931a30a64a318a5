from typing import Any, Optional

ErrorDetails = Optional[dict[str, Any]]


class AppError(Exception):
    status = 500
    code = "INTERNAL_SERVER_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: ErrorDetails = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class InternalServerError(AppError):
    pass


class BadRequestError(AppError):
    status = 400
    code = "BAD_REQUEST"
    default_message = "Bad request"


class NotFoundError(AppError):
    status = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class ConflictError(AppError):
    status = 409
    code = "CONFLICT"
    default_message = "Conflict"


class FieldNotFoundError(BadRequestError):
    def __init__(self, name: str, table: Optional[str] = None) -> None:
        super().__init__(
            f"field not found: {name}", details={"field": name, "table": table}
        )
        self.name = name


class InvalidFilterError(BadRequestError):
    def __init__(self, operator: str, reason: str) -> None:
        super().__init__(
            f"invalid value for operator {operator}: {reason}",
            details={"operator": operator},
        )
        self.operator = operator


class FilterParseError(BadRequestError):
    def __init__(self, text: str, reason: str) -> None:
        super().__init__(f"cannot parse {text!r}: {reason}", details={"input": text})
