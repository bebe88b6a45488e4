"""
Service Container - Dependency Injection Container

Builds the store for the configured backend and the ProgressionService on
top of it. The service is lazy-loaded on first access.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from progression.config import DATABASE_URL, STORE_BACKEND, SUPPORTED_BACKENDS
from progression.db.store import ProgressionStore
from progression.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def build_store(backend: str = STORE_BACKEND, database_url: str = DATABASE_URL) -> ProgressionStore:
    """
    Create the store for a backend name

    Raises:
        ConfigurationError: Unknown backend
    """
    if backend == "memory":
        from progression.db.memory_store import InMemoryProgressionStore
        return InMemoryProgressionStore()

    if backend == "postgres":
        from progression.db.connection import Database
        from progression.db.postgres_store import PostgresProgressionStore
        return PostgresProgressionStore(Database(database_url))

    raise ConfigurationError(
        message=f"Unknown store backend '{backend}', expected one of {SUPPORTED_BACKENDS}",
        config_key="STORE_BACKEND",
    )


@dataclass
class ServiceContainer:
    """
    Holds the store and lazily builds the service on top of it.
    """

    # Infrastructure dependencies (injected)
    store: ProgressionStore

    # Services (lazy-loaded via properties)
    _progression_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def progression_service(self):
        """Get ProgressionService instance (lazy-loaded)"""
        if self._progression_service is None:
            from progression.services.progression_service import ProgressionService
            self._progression_service = ProgressionService(self.store)
            logger.debug("ProgressionService instantiated")
        return self._progression_service

    async def open(self) -> None:
        """Open backend resources (connection pool for postgres)"""
        database = getattr(self.store, "db", None)
        if database is not None:
            await database.init_pool()

    async def close(self) -> None:
        await self.store.close()
        logger.info("Service container closed")


# Global container instance (initialized by the API server)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() before using services."
        )
    return _container


def init_container(store: Optional[ProgressionStore] = None) -> ServiceContainer:
    """
    Initialize the global service container.

    Args:
        store: Store to use; built from STORE_BACKEND when omitted

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(store=store or build_store())

    logger.info(f"Service container initialized ({type(_container.store).__name__})")
    return _container
