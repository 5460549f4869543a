from .models import SyncSession
from .orchestrator import SyncOrchestrator
from .reporter import StatusReporter

__all__ = ["SyncSession", "SyncOrchestrator", "StatusReporter"]
