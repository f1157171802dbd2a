"""
Portex Shared Module
====================

Configuration, logging and console utilities used by the ``portex``
command-line layer.  Nothing in :mod:`portex.parsers` depends on it.
"""

from shared.config import PortexConfig, get_config
from shared.console import PortexConsole
from shared.logger import PortexLogger

__all__ = ["PortexConfig", "PortexConsole", "PortexLogger", "get_config"]
