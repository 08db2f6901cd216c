"""
03_structured_and_embeddings.py - JSON output and vector embeddings
"""

import asyncio
import os

from streamloop import AppConfig, RateLimitedError, StreamLoop


GAME_SCHEMA = {
    "type": "object",
    "properties": {
        "weather": {"type": "string"},
        "temperature": {"type": "integer"},
        "coat_required": {"type": "boolean"},
    },
    "required": ["weather", "temperature", "coat_required"],
}


async def main():
    config = AppConfig.model_validate({
        "llm": {
            "provider": "openai",
            "model": "gpt-4o-mini",
            "api_key": os.environ["OPENAI_API_KEY"],
            "max_retries": 2,
        },
        "embedding": {"model": "text-embedding-3-small"},
    })

    async with StreamLoop(config) as app:
        try:
            response = await app.structured(
                "It's 45 degrees and cloudy in Detroit tonight. Do I need a coat for the game?",
                GAME_SCHEMA,
            )
        except RateLimitedError as e:
            print(f"Rate limited, retry after {e.retry_after}s")
            return
        print(response.structured)

        embeddings = await app.embed(["What is life?", "What is love?"], provider_options={"dimensions": 8})
        for vector in embeddings.embeddings:
            print([round(v, 4) for v in vector])


if __name__ == "__main__":
    asyncio.run(main())
