"""
Browsing Session Example

Runs the whole capture -> buffer -> sync -> search loop in one process:
local state in a SQLite file, the durable store in memory.
"""

import asyncio
import logging

from sqlalchemy import create_engine

from memory_agent import (
    ClientContext,
    MemoryAgent,
    MemoryAgentSettings,
    MemoryService,
    PageContent,
    SessionInfo,
    SessionLedger,
    UserIdentity,
)
from memory_agent.client import StaticIdentityProvider
from memory_agent.storage import InMemoryRecordStore, SQLAlchemyKeyValueStore

PAGES = [
    PageContent(
        title="JavaScript Tutorial - Complete Guide",
        url="https://js.example.com/guide?utm_source=newsletter",
        content="Learn how to use variables, functions and closures. Now you can see the way it works.",
    ),
    PageContent(
        title="Weeknight Pasta",
        url="https://food.example.com/pasta",
        content="A short tutorial on pasta that has been good to us for some time.",
    ),
    # Same page, different tracking parameters: rejected by the visited set
    PageContent(
        title="JavaScript Tutorial - Complete Guide",
        url="https://js.example.com/guide?utm_source=twitter",
        content="Learn how to use variables, functions and closures.",
    ),
]


async def main():
    logging.basicConfig(level=logging.INFO)

    settings = MemoryAgentSettings()
    engine = create_engine("sqlite:///memory_agent_demo.db")
    kv_store = SQLAlchemyKeyValueStore(engine)
    kv_store.create_tables()

    record_store = InMemoryRecordStore()
    service = MemoryService(record_store, settings=settings)
    ledger = SessionLedger(record_store, settings=settings)

    user = UserIdentity(email="demo@example.com", name="Demo User")
    agent = MemoryAgent(
        ClientContext(kv_store, settings),
        remote=service,
        identity_provider=StaticIdentityProvider(user),
        session_ledger=ledger,
    )
    await agent.start()

    try:
        for page in PAGES:
            result = await agent.capture_page(page)
            print(f"{page.url}: {result.status}")

        # Signed out: answered from the local buffer
        response = await agent.search("javascript tutorial")
        print(f"\nLocal search ({response.status}):")
        for record in response.results:
            print(f"  - {record.title}")

        await agent.sign_in(user, SessionInfo(provider="google", name=user.name))
        report = await agent.sync_now()
        print(f"\nSync: {report.status}, {len(report.synced_ids)} marked synced")

        response = await agent.search("javascript tutorial")
        print(f"\nRemote search ({response.status}):")
        for record in response.results:
            print(f"  - {record.title}")

        print(f"\nStats: {agent.stats()}")
    finally:
        await agent.clear_all_data()
        await agent.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
