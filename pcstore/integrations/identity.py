"""
Identity Provisioning Client

Talks to the Keycloak admin REST API to create store accounts and give them
the default realm role.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx
import structlog

from pcstore.services.errors import AlreadyExists, ProvisioningAuthFailed, ProvisioningFailed

logger = structlog.get_logger(__name__)


@dataclass
class ProvisionedIdentity:
    """Account created in the identity provider"""
    id: str
    username: str
    email: str
    enabled: bool = True


class IdentityProvider(Protocol):
    """What registration needs from an identity provider"""

    async def create_user(self, username: str, email: str, password: str) -> ProvisionedIdentity: ...


class KeycloakAdminClient:
    """HTTP client wrapper for the Keycloak admin API."""

    def __init__(
        self,
        base_url: str,
        realm: str,
        admin_username: str,
        admin_password: str,
        admin_realm: str = "master",
        client_id: str = "admin-cli",
        default_role: str = "user",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._realm = realm
        self._admin_username = admin_username
        self._admin_password = admin_password
        self._admin_realm = admin_realm
        self._client_id = client_id
        self._default_role = default_role
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "KeycloakAdminClient":
        cfg = settings.keycloak
        return cls(
            base_url=cfg.base_url,
            realm=cfg.realm,
            admin_username=cfg.admin_username,
            admin_password=cfg.admin_password.get_secret_value(),
            admin_realm=cfg.admin_realm,
            client_id=cfg.client_id,
            default_role=cfg.default_role,
            timeout=cfg.timeout_seconds,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _auth_headers(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def _get_admin_token(self) -> str:
        client = await self._get_client()
        response = await client.post(
            f"/realms/{self._admin_realm}/protocol/openid-connect/token",
            data={
                "username": self._admin_username,
                "password": self._admin_password,
                "grant_type": "password",
                "client_id": self._client_id,
            },
        )
        response.raise_for_status()
        return response.json()["access_token"]

    async def _assign_default_role(self, token: str, user_id: str) -> bool:
        """
        Map the default realm role onto a new account.

        Best-effort: the account is usable without it, so every failure is
        logged and reported as False.
        """
        try:
            client = await self._get_client()
            response = await client.get(
                f"/admin/realms/{self._realm}/roles",
                headers=self._auth_headers(token),
            )
            response.raise_for_status()
            role = next((r for r in response.json() if r.get("name") == self._default_role), None)
            if role is None:
                logger.warning("default_role_missing", role=self._default_role, realm=self._realm)
                return False

            response = await client.post(
                f"/admin/realms/{self._realm}/users/{user_id}/role-mappings/realm",
                json=[{"id": role["id"], "name": role["name"]}],
                headers=self._auth_headers(token),
            )
            response.raise_for_status()
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("role_assignment_failed", user_id=user_id, role=self._default_role, error=str(e))
            return False

        return True

    async def create_user(self, username: str, email: str, password: str) -> ProvisionedIdentity:
        """
        Create an enabled, pre-verified account with a permanent password.

        Raises:
            AlreadyExists: the provider answered 409
            ProvisioningAuthFailed: the provider answered 401
            ProvisioningFailed: any other provider or transport failure
        """
        try:
            token = await self._get_admin_token()

            client = await self._get_client()
            response = await client.post(
                f"/admin/realms/{self._realm}/users",
                json={
                    "username": username,
                    "email": email,
                    "enabled": True,
                    "emailVerified": True,
                    "credentials": [{"type": "password", "value": password, "temporary": False}],
                },
                headers=self._auth_headers(token),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise _map_status_error(e) from e
        except httpx.TimeoutException as e:
            logger.error("keycloak_timeout", error=str(e))
            raise ProvisioningFailed(f"Keycloak error: timeout ({e})") from e
        except httpx.HTTPError as e:
            logger.error("keycloak_unreachable", error=str(e))
            raise ProvisioningFailed(f"Keycloak error: {e}") from e
        except (ValueError, KeyError) as e:
            raise ProvisioningFailed(f"Keycloak error: unreadable token response ({e})") from e

        user_id = response.headers.get("location", "").rstrip("/").rsplit("/", 1)[-1]
        if not user_id:
            raise ProvisioningFailed("Failed to get user ID from Keycloak response")

        await self._assign_default_role(token, user_id)

        logger.info("keycloak_user_created", user_id=user_id, username=username)
        return ProvisionedIdentity(id=user_id, username=username, email=email, enabled=True)


def _map_status_error(error: httpx.HTTPStatusError) -> ProvisioningFailed | AlreadyExists:
    status = error.response.status_code
    logger.error("keycloak_request_failed", status=status, url=str(error.request.url))

    if status == 409:
        return AlreadyExists("User already exists in Keycloak")
    if status == 401:
        return ProvisioningAuthFailed()

    reason = _error_reason(error.response) or "Unknown error"
    return ProvisioningFailed(f"Keycloak error ({status}): {reason}")


def _error_reason(response: httpx.Response) -> Optional[str]:
    try:
        body: Any = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("errorMessage") or body.get("error")
    return None
