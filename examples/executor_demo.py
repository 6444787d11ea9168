from __future__ import annotations

import argparse
import asyncio
import logging

from llm_relay import Backend, RelaySettings, create_transport

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

# Anthropic‐style tool definition; translated automatically for the OpenAI backend
WEATHER_TOOL: dict[str, object] = {
    "name": "get_weather",
    "description": "Get the current weather in a given location",
    "input_schema": {
        "type": "object",
        "properties": {
            "location": {
                "type": "string",
                "description": "City and state, e.g. San Francisco, CA",
            },
            "unit": {
                "type": "string",
                "enum": ["celsius", "fahrenheit"],
            },
        },
        "required": ["location"],
    },
}


async def single_request(backend: Backend, model: str) -> None:
    """
    Send one Anthropic-shaped request through the executor transport.

    Whatever the backend, the callback sees an Anthropic-shaped body.
    """
    settings = RelaySettings(backend=backend, model=model)
    done = asyncio.Event()

    def on_response(body, error) -> None:
        if error is not None:
            logger.error("Request failed: %s", error)
        else:
            for block in body["content"]:
                if block["type"] == "text":
                    logger.info("Text: %s", block["text"])
                else:
                    logger.info("Tool call %s(%s)", block["name"], block["input"])
            logger.info("Stop reason: %s", body["stop_reason"])
        done.set()

    payload = {
        "model": model,
        "max_tokens": 512,
        "system": "You are a helpful assistant.",
        "messages": [{"role": "user", "content": "What's the weather in San Francisco?"}],
        "tools": [WEATHER_TOOL],
    }

    async with create_transport(settings) as transport:
        await transport.request(payload, on_response)
        await done.wait()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--backend",
        choices=[b.value for b in Backend],
        default=Backend.ANTHROPIC.value,
    )
    parser.add_argument(
        "--model",
        default="claude-3-5-haiku-20241022",  # "gpt-4.1-nano-2025-04-14" for --backend openai
    )
    args = parser.parse_args()

    asyncio.run(single_request(Backend(args.backend), args.model))
