"""
01_basic_stream.py - Stream a plain text answer
"""

import asyncio
import os

from streamloop import AppConfig, StreamEnd, StreamLoop, TextDelta


async def main():
    config = AppConfig.model_validate({
        "llm": {
            "provider": "gemini",
            "model": "gemini-2.5-flash",
            "api_key": os.environ["GEMINI_API_KEY"],
        },
    })

    async with StreamLoop(config) as app:
        async with app.stream("Explain how AI works in three sentences.") as events:
            async for event in events:
                if isinstance(event, TextDelta):
                    print(event.delta, end="", flush=True)
                elif isinstance(event, StreamEnd):
                    print(f"\n\n[{event.finish_reason.value}] {event.usage.total_tokens} tokens")


if __name__ == "__main__":
    asyncio.run(main())
