from memory_agent.client.buffer import LocalMemoryBuffer
from memory_agent.client.context import ClientContext
from memory_agent.client.events import EventLog
from memory_agent.client.identity import HttpIdentityProvider, IdentityProvider, StaticIdentityProvider
from memory_agent.client.remote import HttpRemoteClient, RemoteMemoryClient
from memory_agent.client.visited import VisitedSetTracker

__all__ = [
    "ClientContext",
    "EventLog",
    "HttpIdentityProvider",
    "HttpRemoteClient",
    "IdentityProvider",
    "LocalMemoryBuffer",
    "RemoteMemoryClient",
    "StaticIdentityProvider",
    "VisitedSetTracker",
]
