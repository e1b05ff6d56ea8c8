from memory_agent.sync.engine import SyncEngine
from memory_agent.sync.models import SyncReport, SyncState

__all__ = ["SyncEngine", "SyncReport", "SyncState"]
