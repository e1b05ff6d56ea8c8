"""
Error taxonomy for the memory agent.

Capture, sync and query paths each decide which of these they swallow
(and log) and which they surface to the caller.
"""


class MemoryAgentError(Exception):
    """Base class for all memory agent errors."""


class DuplicateRejected(MemoryAgentError):
    """A capture was refused because its normalized URL was already visited."""

    def __init__(self, url: str):
        super().__init__(f"URL already captured: {url}")
        self.url = url


class AuthenticationRequired(MemoryAgentError):
    """No identity is available; sync is deferred."""


class RemoteUnavailable(MemoryAgentError):
    """The remote store could not be reached or timed out. Retryable."""

    retryable = True


class SemanticSearchUnavailable(MemoryAgentError):
    """The record store cannot run a similarity query."""


class Unauthorized(MemoryAgentError):
    """The caller does not own the record it tried to act on."""


class MalformedInput(MemoryAgentError):
    """A single input item could not be interpreted."""


class NotReady(MemoryAgentError):
    """Client state did not finish loading before the deadline."""
