"""Orchestration of account monitors and per-call pipelines."""

from .account_monitor import AccountMonitor, MonitorState
from .fleet import FleetSupervisor
from .pipeline import EventPipeline

__all__ = ["AccountMonitor", "EventPipeline", "FleetSupervisor", "MonitorState"]
