"""
HTTP control surface for the virtual clock.

Provides:
- ControlServer: status, metrics and calibration endpoints
"""

from .control_server import ControlServer, ControlRequestHandler

__all__ = ['ControlServer', 'ControlRequestHandler']
