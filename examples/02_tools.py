"""
02_tools.py - Multi-step streaming with local tools
"""

import asyncio
import os
from typing import Annotated

from streamloop import (
    AppConfig,
    StreamLoop,
    StepStart,
    StreamEnd,
    TextDelta,
    ToolCallRequested,
    ToolResultProduced,
)


async def main():
    config = AppConfig.model_validate({
        "llm": {
            "provider": "vertexai",
            "model": "gemini-2.5-flash",
            "api_key": os.environ["VERTEXAI_API_KEY"],
        },
        "vertexai": {
            "project_id": os.environ["GOOGLE_CLOUD_PROJECT"],
            "location": "us-central1",
        },
        "loop": {"max_steps": 5},
    })
    app = StreamLoop(config)

    @app.tool
    def weather(city: Annotated[str, "The city that you want the weather for"]) -> str:
        """useful when you need to search for current weather conditions"""
        return "The weather will be " + ("50" if city == "San Francisco" else "75") + f"° and sunny in {city}"

    prompt = "Is it warmer in San Francisco or Santa Cruz? What's the weather like in both cities?"
    async with app.stream(prompt) as events:
        async for event in events:
            if isinstance(event, StepStart):
                print(f"\n--- step {event.step_index} ---")
            elif isinstance(event, TextDelta):
                print(event.delta, end="", flush=True)
            elif isinstance(event, ToolCallRequested):
                print(f"-> {event.tool_call.name}({event.tool_call.arguments})")
            elif isinstance(event, ToolResultProduced):
                print(f"<- {event.tool_result.content}")
            elif isinstance(event, StreamEnd):
                print(f"\n\n[{event.finish_reason.value}] {event.step_count} steps, {event.usage.total_tokens} tokens")

    await app.close()


if __name__ == "__main__":
    asyncio.run(main())
