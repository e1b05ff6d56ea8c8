"""Bounded waits on the client's readiness gates."""

import asyncio

from memory_agent.errors import NotReady


async def wait_for_gate(gate: asyncio.Event, timeout: float, name: str) -> None:
    """
    Wait for a readiness gate to open.

    Raises:
        NotReady: If the gate is still closed after ``timeout`` seconds,
            typically because ``initialize()`` was never called
    """
    if gate.is_set():
        return
    try:
        await asyncio.wait_for(gate.wait(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise NotReady(f"{name} not loaded after {timeout}s; was initialize() called?") from e
