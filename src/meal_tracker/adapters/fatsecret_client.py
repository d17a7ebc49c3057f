"""FatSecret platform API client."""

from dataclasses import dataclass, field
from typing import Protocol

import httpx

TOKEN_URL = "https://oauth.fatsecret.com/connect/token"
SEARCH_URL = "https://platform.fatsecret.com/rest/foods/search/v1"


class FatSecretClient(Protocol):
    """Interface for FatSecret food search."""

    async def search_foods(self, query: str, max_results: int = 1) -> dict[str, object]:
        """Search foods by expression and return raw API data."""


@dataclass
class HttpxFatSecretClient(FatSecretClient):
    """HTTPX-backed FatSecret client using OAuth2 client credentials."""

    client_id: str
    client_secret: str
    http_client: httpx.AsyncClient
    token_url: str = TOKEN_URL
    search_url: str = SEARCH_URL
    _access_token: str | None = field(default=None, repr=False)

    @classmethod
    def create(cls, client_id: str, client_secret: str) -> "HttpxFatSecretClient":
        """Create a FatSecret client with a managed httpx session."""
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            http_client=httpx.AsyncClient(),
        )

    async def search_foods(self, query: str, max_results: int = 1) -> dict[str, object]:
        """Search foods by expression."""
        token = await self._token()
        response = await self.http_client.get(
            self.search_url,
            params={
                "search_expression": query,
                "format": "json",
                "max_results": max_results,
            },
            headers={"Authorization": f"Bearer {token}"},
            timeout=15,
        )
        if response.status_code == httpx.codes.UNAUTHORIZED:
            self._access_token = None
        response.raise_for_status()
        return response.json()

    async def _token(self) -> str:
        if self._access_token:
            return self._access_token
        response = await self.http_client.post(
            self.token_url,
            data={
                "grant_type": "client_credentials",
                "scope": "basic",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            timeout=15,
        )
        response.raise_for_status()
        token = response.json().get("access_token")
        if not token:
            raise RuntimeError("FatSecret returned no access token")
        self._access_token = str(token)
        return self._access_token

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
