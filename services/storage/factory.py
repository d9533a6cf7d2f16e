"""Factory for persistence collaborators based on configuration.

Implements Factory Pattern for backend selection with registry pattern for extensibility.

Based on:
- Factory Pattern: https://refactoring.guru/design-patterns/factory-method/python
- Registry Pattern: Python Cookbook 3rd Edition, Recipe 9.22
"""

import logging

from services.shared.config import Settings
from services.storage.base import LedgerStore, SupplierRegistry
from services.storage.memory import InMemoryLedgerStore, InMemorySupplierRegistry

logger = logging.getLogger(__name__)


class StorageBackendRegistry:
    """Registry of available storage backends.

    Maps a backend name to its supplier registry and ledger store classes.
    """

    _backends: dict[str, tuple[type[SupplierRegistry], type[LedgerStore]]] = {
        "memory": (InMemorySupplierRegistry, InMemoryLedgerStore),
    }

    @classmethod
    def register(
        cls,
        name: str,
        supplier_registry_class: type[SupplierRegistry],
        ledger_store_class: type[LedgerStore],
    ) -> None:
        """Register a new backend.

        Args:
            name: Backend identifier (must match Settings.storage_backend)
            supplier_registry_class: SupplierRegistry implementation
            ledger_store_class: LedgerStore implementation
        """
        cls._backends[name] = (supplier_registry_class, ledger_store_class)
        logger.info(f"Registered storage backend: {name}")

    @classmethod
    def get_backend(cls, name: str) -> tuple[type[SupplierRegistry], type[LedgerStore]]:
        """Get backend classes by name.

        Raises:
            ValueError: If backend not found in registry
        """
        if name not in cls._backends:
            available = ", ".join(cls._backends.keys())
            raise ValueError(
                f"Unknown storage backend: '{name}'. " f"Available backends: {available}"
            )
        return cls._backends[name]

    @classmethod
    def list_backends(cls) -> list[str]:
        return list(cls._backends.keys())


def create_supplier_registry(settings: Settings) -> SupplierRegistry:
    """Create the supplier registry configured by settings.storage_backend."""
    registry_class, _ = StorageBackendRegistry.get_backend(settings.storage_backend)
    logger.info(f"Created supplier registry: {settings.storage_backend}")
    return registry_class()


def create_ledger_store(settings: Settings) -> LedgerStore:
    """Create the ledger store configured by settings.storage_backend."""
    _, store_class = StorageBackendRegistry.get_backend(settings.storage_backend)
    logger.info(f"Created ledger store: {settings.storage_backend}")
    return store_class()
