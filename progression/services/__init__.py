"""
Service Layer Package

Business logic entry points used by activity sources and the HTTP API.

- ProgressionService: points, streaks, achievements, leaderboards, rewards
- ServiceContainer: builds the store for the configured backend
"""

from progression.services.container import ServiceContainer, build_store, get_container, init_container
from progression.services.progression_service import ProgressionService

__all__ = [
    "ServiceContainer",
    "build_store",
    "get_container",
    "init_container",
    "ProgressionService",
]
