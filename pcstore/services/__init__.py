"""
Services Module

Business operations of the store. Service classes live in their own modules
(`registration`, `categories`, `products`) and receive their database session
and external clients through their constructors.
"""
from .errors import (
    AlreadyExists,
    AssetCleanupFailed,
    AssetDeletionFailed,
    DuplicateName,
    InternalError,
    InvalidLimit,
    InvalidUserData,
    NotFound,
    ProvisioningAuthFailed,
    ProvisioningFailed,
    RegistrationFailed,
    StoreError,
    UploadFailed,
    ValidationError,
)

__all__ = [
    "AlreadyExists",
    "AssetCleanupFailed",
    "AssetDeletionFailed",
    "DuplicateName",
    "InternalError",
    "InvalidLimit",
    "InvalidUserData",
    "NotFound",
    "ProvisioningAuthFailed",
    "ProvisioningFailed",
    "RegistrationFailed",
    "StoreError",
    "UploadFailed",
    "ValidationError",
]
