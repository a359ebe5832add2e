"""
REST API Interface

HTTP control surface for the DIS recorder.
"""

from .server import create_api_server, RecorderAPI

__all__ = [
    "create_api_server",
    "RecorderAPI",
]
