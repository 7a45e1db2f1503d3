"""
Session Factory
Centralizes the wiring of persistence adapters and the session service.
"""

from smartlearn.application.config import AppConfig
from smartlearn.application.learn.session_service import SessionService
from smartlearn.domain.learn.ports import SessionPersistenceAdapter
from smartlearn.infrastructure.adapters.vault_store import VaultStoreAdapter


def get_persistence_adapter(config: AppConfig) -> SessionPersistenceAdapter:
    """
    Returns the persistence adapter for the configured directories.
    """
    return VaultStoreAdapter(library_dir=config.library_dir, progress_dir=config.progress_dir)


def get_session_service(config: AppConfig) -> SessionService:
    """
    Returns a SessionService with its own cache, backed by the configured adapter.
    """
    return SessionService(get_persistence_adapter(config), params=config.learn.to_params())
