"""
HTTP Agent Example

Wires the agent to a running web application: identity comes from
``/api/extension/get-user`` and records go to ``/api/extension/store-memory``.

Configure with environment variables, e.g.:

    MEMORY_AGENT_REMOTE_BASE_URL=http://localhost:3000
    MEMORY_AGENT_SYNC_INTERVAL_SECONDS=60
"""

import asyncio
import logging

from sqlalchemy import create_engine

from memory_agent import ClientContext, MemoryAgent, MemoryAgentSettings, PageContent
from memory_agent.client import HttpIdentityProvider, HttpRemoteClient
from memory_agent.storage import SQLAlchemyKeyValueStore


async def main():
    logging.basicConfig(level=logging.INFO)

    settings = MemoryAgentSettings()
    base_url = settings.remote_base_url or "http://localhost:3000"

    kv_store = SQLAlchemyKeyValueStore(create_engine("sqlite:///memory_agent.db"))
    kv_store.create_tables()

    remote = HttpRemoteClient(base_url, settings=settings)
    identity = HttpIdentityProvider(base_url, settings=settings)
    agent = MemoryAgent(ClientContext(kv_store, settings), remote, identity)
    await agent.start()

    try:
        await agent.capture_page(
            PageContent(
                title="Example Domain",
                url="https://example.com/",
                content="This domain is for use in illustrative examples in documents.",
            )
        )
        report = await agent.sync_now()
        print(f"Sync: {report.status} ({report.error or 'ok'})")

        response = await agent.search("illustrative examples")
        print(f"Search: {response.status} from {response.source}")
        for record in response.results:
            print(f"  - {record.title or record.content[:60]}")
    finally:
        await agent.shutdown()
        await remote.aclose()
        await identity.aclose()


if __name__ == "__main__":
    asyncio.run(main())
