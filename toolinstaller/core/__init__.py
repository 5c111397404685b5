"""
Core modules for the tool installer.
"""

from .orchestrator import BatchOrchestrator
from .script_executor import ScriptExecutor, DryRunExecutor
from .registry import ActiveBatch, ActiveBatchRegistry
from .progress import ProgressHub, ProgressSubscription
from .catalog import ToolCatalog

__all__ = [
    "BatchOrchestrator",
    "ScriptExecutor",
    "DryRunExecutor",
    "ActiveBatch",
    "ActiveBatchRegistry",
    "ProgressHub",
    "ProgressSubscription",
    "ToolCatalog"
]
