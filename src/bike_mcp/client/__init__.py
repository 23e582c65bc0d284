"""Bike client package."""

from .api_client import BikeClient
from .executor import ScriptExecutor, make_executor, run_applescript

__all__ = ["BikeClient", "ScriptExecutor", "make_executor", "run_applescript"]
