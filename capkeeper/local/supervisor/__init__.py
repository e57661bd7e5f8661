"""
The Supervisor package.
Manages the lifecycle of the capture process.

This package contains the central CaptureSupervisor class and its helper modules,
which together handle starting, stopping and restarting the capture tool,
capture file retention and main log file reduction.
"""
from .supervisor import CaptureSupervisor, SupervisorState

__all__ = ['CaptureSupervisor', 'SupervisorState']
