"""
Services layer for sshbuddy.

Caller-side orchestration between the core sources and the interactive
front end.
"""

from .inventory import InventoryService, RefreshOutcome
from .probe_board import ProbeBoard, ProbeStatus

__all__ = ["InventoryService", "RefreshOutcome", "ProbeBoard", "ProbeStatus"]
