"""HTTP client delivering meal replies to a callback URL."""

from dataclasses import dataclass

import httpx

from meal_tracker.services.meals import ReplyClient


@dataclass
class HttpxReplyClient(ReplyClient):
    """Posts reply text as JSON to the sender's callback URL."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(cls) -> "HttpxReplyClient":
        """Create a reply client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient())

    async def send(self, reply_url: str, text: str) -> None:
        """Post ``{"text": ...}`` to the callback URL."""
        response = await self.http_client.post(
            reply_url,
            json={"text": text},
            timeout=15,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
