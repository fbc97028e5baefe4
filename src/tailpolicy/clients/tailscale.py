from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote

import structlog
from pydantic import SecretStr

from tailpolicy.clients.base import BaseHTTPClient
from tailpolicy.tailnet.keys import AuthKeyRequest, IssuedKey

logger = structlog.get_logger()

DEFAULT_BASE_URL = "https://api.tailscale.com/api/v2"


class TailscaleClient(BaseHTTPClient):
    """Tailscale control plane API client.

    Implements the policy publisher, DNS configurator, credential issuer
    and settings applier used by the orchestrator.
    """

    def __init__(
        self,
        api_key: str | SecretStr | None,
        tailnet: str = "-",
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
    ) -> None:
        super().__init__(base_url, timeout=timeout, max_retries=max_retries)
        if isinstance(api_key, str):
            api_key = SecretStr(api_key)
        self._api_key = api_key
        self._tailnet = tailnet

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self._api_key is not None:
            headers["Authorization"] = f"Bearer {self._api_key.get_secret_value()}"
        return headers

    def _path(self, suffix: str) -> str:
        return f"/tailnet/{quote(self._tailnet, safe='')}/{suffix}"

    async def set_acl(self, document: bytes) -> dict[str, Any]:
        """Replace the tailnet policy file with the serialized document."""
        logger.info("tailscale_acl_publish", tailnet=self._tailnet, size=len(document))
        return await self.post(self._path("acl"), content=document)

    async def get_acl(self) -> dict[str, Any]:
        return await self.get(self._path("acl"))

    async def set_dns_preferences(self, magic_dns: bool) -> dict[str, Any]:
        return await self.post(self._path("dns/preferences"), json={"magicDNS": magic_dns})

    async def set_search_paths(self, search_paths: list[str]) -> dict[str, Any]:
        return await self.post(self._path("dns/searchpaths"), json={"searchPaths": search_paths})

    async def set_nameservers(self, nameservers: list[str]) -> dict[str, Any]:
        return await self.post(self._path("dns/nameservers"), json={"dns": nameservers})

    async def set_split_dns(self, routes: dict[str, list[str]]) -> dict[str, Any]:
        return await self.put(self._path("dns/split-dns"), json=routes)

    async def create_key(self, request: AuthKeyRequest) -> IssuedKey:
        """Create an auth key. The key secret is never logged."""
        data = await self.post(self._path("keys"), json=request.to_dict())
        secret = data.get("key")
        issued = IssuedKey(
            id=str(data.get("id", "")),
            expires=data.get("expires"),
            secret=SecretStr(secret) if secret else None,
        )
        logger.info("tailscale_key_created", key=request.name, key_id=issued.id)
        return issued

    async def update_settings(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        return await self.patch(self._path("settings"), json=dict(settings))

    async def update_contact(self, contact_type: str, email: str) -> dict[str, Any]:
        return await self.patch(self._path(f"contacts/{contact_type}"), json={"email": email})
