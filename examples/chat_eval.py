import asyncio
import math

from llm_relay import LocalToolRunner, RelaySettings, create_chat_session


async def chat_example():
    # Backend, model and temperatures come from LLM_RELAY_* / .env
    settings = RelaySettings.from_env()
    runner = LocalToolRunner(namespace={"math": math})

    async with create_chat_session(
        settings,
        runner=runner,
        system="Use evaluate_expression for any arithmetic.",
        on_error=lambda error: print("Chat failed:", error),
    ) as session:
        messages = [
            {"role": "user", "content": "What is the square root of 1764?"},
        ]
        await session.send(messages)

    print(session.transcript.text())


if __name__ == "__main__":
    asyncio.run(chat_example())
