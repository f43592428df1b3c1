"""OpenAI Responses API client for daily-log extraction."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from stoma_tracker.services.extraction import EntryClient


@dataclass
class OpenAIEntryClient(EntryClient):
    """Entry client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIEntryClient":
        """Create an OpenAI entry client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        text: str,
        schema: dict[str, object],
    ) -> dict[str, object]:
        """Call OpenAI Responses API with a JSON schema output format."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_text", "text": text},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "daily_log_entries",
                    "strict": False,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        parsed = json.loads(output_text)
        if not isinstance(parsed, dict):
            raise RuntimeError("OpenAI returned a non-object response")
        return parsed

    async def close(self) -> None:
        """Close the underlying OpenAI client."""
        await self.client.close()
