"""OpenAI Responses API client for meal parsing."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from meal_tracker.services.parser import LlmClient


@dataclass
class OpenAILlmClient(LlmClient):
    """LLM client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    model: str
    reasoning_effort: str | None = None
    store: bool = False

    @classmethod
    def create(
        cls,
        api_key: str,
        model: str,
        reasoning_effort: str | None = None,
        store: bool = False,
    ) -> "OpenAILlmClient":
        """Create an OpenAI LLM client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key),
            model=model,
            reasoning_effort=reasoning_effort,
            store=store,
        )

    async def run(self, messages: list[dict[str, str]]) -> str:
        """Send the prompt messages and return the output text."""
        request_payload: dict[str, object] = {
            "model": self.model,
            "input": [
                {"role": message["role"], "content": message["content"]}
                for message in messages
            ],
            "store": self.store,
        }
        if self.reasoning_effort:
            request_payload["reasoning"] = {"effort": self.reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying OpenAI client."""
        await self.client.close()
