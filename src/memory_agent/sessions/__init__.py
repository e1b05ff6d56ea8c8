from memory_agent.sessions.ledger import SessionLedger

__all__ = ["SessionLedger"]
