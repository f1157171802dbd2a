"""
Portex Output Module
=====================

Console display and report generation for decode results.
"""

from portex.output.console import PortexConsoleOutput
from portex.output.report import PortexReportGenerator

__all__ = [
    "PortexConsoleOutput",
    "PortexReportGenerator",
]
