"""
External Service Clients
"""
from .identity import IdentityProvider, KeycloakAdminClient, ProvisionedIdentity
from .images import CloudinaryClient, ImageStore, UploadResult, extract_asset_id

__all__ = [
    "IdentityProvider",
    "KeycloakAdminClient",
    "ProvisionedIdentity",
    "CloudinaryClient",
    "ImageStore",
    "UploadResult",
    "extract_asset_id",
]
