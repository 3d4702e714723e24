"""
Basic usage example for the A2A ReAct host agent.

Requires DEEPSEEK_API_KEY and a running A2A server whose agent card is
served at A2A_AGENT_CARD_URL.
"""

import asyncio
import logging
import os
import sys

from react_host import CapabilityRegistryEntry, HostAgent, HostAgentConfig, StaticSettingsProvider
from react_host.a2a import A2AClient


def on_chunk(chunk: str) -> None:
    # "\r" 表示一段文本结束
    sys.stdout.write("\n" if chunk == "\r" else chunk)
    sys.stdout.flush()


def on_complete(result: str) -> None:
    print("\nCompleted:", result)


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    card_url = os.getenv("A2A_AGENT_CARD_URL", "http://localhost:10000/.well-known/agent.json")
    card = A2AClient().get_agent_card(card_url)
    entry = CapabilityRegistryEntry.from_agent_card(card, url=card_url, id=1)
    agent = HostAgent(HostAgentConfig(settings=StaticSettingsProvider.from_env(agents=[entry])))
    outcome = await agent.execute("@/message/send Tell me two jokes", on_chunk, on_complete)
    if outcome is not None:
        print("Status:", outcome.status.value, "after", outcome.turns, "turns")


if __name__ == "__main__":
    asyncio.run(main())
