"""Domain errors raised by the service layer and translated by the API routers."""


class AuthError(ValueError):
    """Credentials or session token rejected."""


class ConflictError(ValueError):
    """Resource already exists."""


class NotFoundError(LookupError):
    pass


class ForbiddenError(LookupError):
    """Resource exists but belongs to another user."""
