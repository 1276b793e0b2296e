class ApiError(Exception):
    """Error surfaced to the client as ``{"error": message}``."""

    def __init__(self, message, status_code=400, **extra):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.extra = extra

    def to_dict(self):
        payload = {'error': self.message}
        payload.update(self.extra)
        return payload


def not_found(what='Not found'):
    return ApiError(what, 404)


def forbidden(message='Forbidden'):
    return ApiError(message, 403)


def conflict(message, **extra):
    return ApiError(message, 409, **extra)
