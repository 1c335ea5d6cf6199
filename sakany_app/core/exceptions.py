class MessagingError(Exception):
    status_code = 500
    detail = "Messaging failure"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.detail
        super().__init__(self.detail)


class ValidationError(MessagingError):
    status_code = 422
    detail = "Invalid message"


class NotAuthenticated(MessagingError):
    status_code = 401
    detail = "Not authenticated"


class PermissionDenied(MessagingError):
    status_code = 403
    detail = "Access denied"


class NotFound(MessagingError):
    status_code = 404
    detail = "Not found"


class ConnectionLost(MessagingError):
    status_code = 410
    detail = "Connection lost"


class StoreUnavailable(MessagingError):
    status_code = 503
    detail = "Message store is unavailable"
