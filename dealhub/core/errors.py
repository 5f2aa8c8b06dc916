from __future__ import annotations


class DealHubError(Exception):
    """Base for failures that are rendered to the client as `{"detail": ...}`."""

    status_code = 400
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(DealHubError):
    status_code = 404
    default_detail = "Not found"


class TenantResolutionError(NotFoundError):
    default_detail = "No tenant found for this domain"


class ConflictError(DealHubError):
    status_code = 409
    default_detail = "Conflict"


class InvalidInputError(DealHubError):
    status_code = 400
    default_detail = "Invalid input"


class AccessDeniedError(DealHubError):
    status_code = 403
    default_detail = "Forbidden"


class AuthenticationRequiredError(DealHubError):
    status_code = 401
    default_detail = "Unauthorized"
