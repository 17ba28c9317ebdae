from fastapi import HTTPException, status

class BaseAppException(HTTPException):
    code = "error"

    def __init__(self, status_code: int, detail: str, headers: dict = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)

class Unauthorized(BaseAppException):
    code = "unauthorized"

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class Forbidden(BaseAppException):
    code = "forbidden"

    def __init__(self, detail: str = "Insufficient permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

class Conflict(BaseAppException):
    code = "conflict"

    def __init__(self, detail: str = "Request conflicts with current state"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class ValidationError(BaseAppException):
    code = "validation"

    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class NotFoundError(BaseAppException):
    code = "not_found"

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class StorageError(BaseAppException):
    code = "storage_error"

    def __init__(self, detail: str = "Storage unavailable"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
