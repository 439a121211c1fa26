"""Domain errors raised by the service modules and mapped to HTTP responses in main."""


class StoreError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class BadRequest(StoreError):
    status_code = 400


class NotAuthenticated(StoreError):
    status_code = 401


class PermissionDenied(StoreError):
    status_code = 403


class NotFound(StoreError):
    status_code = 404


class Conflict(StoreError):
    status_code = 409


class InsufficientStock(Conflict):
    pass


class InvalidTransition(Conflict):
    pass
