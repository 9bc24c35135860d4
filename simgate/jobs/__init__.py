"""
simgate Jobs

Periodic tasks driven by an external scheduler. Each job takes its
services and roster explicitly.
"""

from .forwarding import ForwardingUpdate, JobError, update_forwarding
from .roster import Roster, StaticRoster
from .sms_monitor import MonitorReport, monitor_sms, process_sms

__all__ = [
    "ForwardingUpdate",
    "JobError",
    "MonitorReport",
    "Roster",
    "StaticRoster",
    "monitor_sms",
    "process_sms",
    "update_forwarding",
]
