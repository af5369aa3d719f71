"""
Connections Package - operation-scoped access to target databases
"""
from pgconsole.connections.pool import pool_manager, ConnectionPoolManager, TargetCredentials

__all__ = [
    "pool_manager",
    "ConnectionPoolManager",
    "TargetCredentials",
]
