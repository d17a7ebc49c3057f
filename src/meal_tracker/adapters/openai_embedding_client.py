"""OpenAI embeddings client for the semantic index."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from meal_tracker.services.semantic_index import EmbeddingClient


@dataclass
class OpenAIEmbeddingClient(EmbeddingClient):
    """Embedding client backed by OpenAI embeddings API."""

    client: AsyncOpenAI
    model: str

    @classmethod
    def create(cls, api_key: str, model: str) -> "OpenAIEmbeddingClient":
        """Create an OpenAI embedding client."""
        return cls(client=AsyncOpenAI(api_key=api_key), model=model)

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for ``text``."""
        response = await self.client.embeddings.create(model=self.model, input=text)
        if not response.data or not response.data[0].embedding:
            raise RuntimeError("OpenAI returned an empty embedding")
        return list(response.data[0].embedding)

    async def close(self) -> None:
        """Close the underlying OpenAI client."""
        await self.client.close()
