"""
Service Errors

Every failure a service can report to a caller. Each kind carries the HTTP
status it maps to and a message that is safe to show to clients; internal
detail travels separately in `detail` and is only logged.
"""

from typing import Optional


class StoreError(Exception):
    """Base class for all service-level failures"""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        """Message returned to API clients"""
        return self.message


class ValidationError(StoreError):
    """Missing or malformed input"""
    status_code = 400
    default_message = "Invalid request"


class InvalidLimit(ValidationError):
    default_message = "limit must be a positive integer"


class InvalidUserData(ValidationError):
    default_message = "Invalid user data provided"


class NotFound(StoreError):
    status_code = 404
    default_message = "Resource not found"


class AlreadyExists(StoreError):
    status_code = 400
    default_message = "Resource already exists"


class DuplicateName(AlreadyExists):
    default_message = "Category with this name already exists"


class ProvisioningFailed(StoreError):
    """The identity provider could not create the account"""
    status_code = 500
    default_message = "Keycloak error"

    @property
    def public_message(self) -> str:
        return "Failed to create user in authentication service"


class ProvisioningAuthFailed(ProvisioningFailed):
    default_message = "Keycloak authentication failed - check admin credentials"


class RegistrationFailed(StoreError):
    status_code = 500
    default_message = "Registration failed. Please try again."


class UploadFailed(StoreError):
    """Both the unsigned and the preset upload were rejected"""
    status_code = 502
    default_message = "Image upload failed"


class AssetDeletionFailed(StoreError):
    status_code = 500
    default_message = "Failed to delete image from Cloudinary"

    def __init__(self, message: Optional[str] = None, *, result: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message, detail=detail)
        self.result = result


class AssetCleanupFailed(StoreError):
    """Logged when a best-effort image delete fails; never raised to callers"""
    default_message = "Image cleanup failed"


class InternalError(StoreError):
    status_code = 500
    default_message = "Internal server error"
