"""Custom exceptions for the DoceGestão application."""

class DoceGestaoError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class BusinessLogicError(DoceGestaoError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(DoceGestaoError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class UploadError(DoceGestaoError):
    """Raised when a product image cannot be stored."""
    def __init__(self, message, permission_denied=False):
        super().__init__(message, 403 if permission_denied else 400)
        self.permission_denied = permission_denied

class BackendUnavailableError(DoceGestaoError):
    """Raised when the remote backend cannot be reached."""
    def __init__(self, message="Erro ao tentar conectar. Tente novamente."):
        super().__init__(message, 503)

class UnauthorizedError(DoceGestaoError):
    """Raised when the request is not authenticated."""
    def __init__(self, message="Faça login para continuar."):
        super().__init__(message, 401)
