"""
Fanout Web API

Provides a lightweight HTTP ingestion and status API using only Python stdlib.
"""

from fanout.presentation.web.app import FanoutWebApp

__all__ = ["FanoutWebApp"]
