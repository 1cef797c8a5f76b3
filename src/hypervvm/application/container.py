"""
Dependency injection container for the application.

Builds the lifecycle service and its collaborators on first use, so a
command that only renders scripts never loads connection settings.
"""

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from ..domain.models import ConnectionConfig
from ..infrastructure.config import ConfigRepository
from ..infrastructure.scripts import ScriptRenderer
from ..infrastructure.winrm import RemoteExecutor, SessionManager
from .lifecycle import VMLifecycleService

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency injection container.

    Manages creation of the services and infrastructure components used by
    the CLI.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize the container.

        Args:
            config_path: Optional JSON/JSONC connection file
            overrides: Explicit connection settings (highest precedence)
            environ: Environment mapping (defaults to os.environ)
        """
        self.config_path = config_path
        self.overrides = dict(overrides or {})
        self.environ = environ

        self._config_repository: Optional[ConfigRepository] = None
        self._connection_config: Optional[ConnectionConfig] = None
        self._session_manager: Optional[SessionManager] = None
        self._renderer: Optional[ScriptRenderer] = None
        self._executor: Optional[RemoteExecutor] = None
        self._lifecycle_service: Optional[VMLifecycleService] = None

    @property
    def config_repository(self) -> ConfigRepository:
        """Get the configuration repository."""
        if self._config_repository is None:
            self._config_repository = ConfigRepository(self.environ)
        return self._config_repository

    @property
    def connection_config(self) -> ConnectionConfig:
        """Get the merged, validated connection settings."""
        if self._connection_config is None:
            self._connection_config = self.config_repository.load_connection_config(
                self.config_path, self.overrides
            )
            logger.debug("Connection target: %s", self._connection_config.endpoint)
        return self._connection_config

    @property
    def session_manager(self) -> SessionManager:
        """Get the WinRM session manager."""
        if self._session_manager is None:
            self._session_manager = SessionManager()
        return self._session_manager

    @property
    def renderer(self) -> ScriptRenderer:
        """Get the script renderer."""
        if self._renderer is None:
            self._renderer = ScriptRenderer()
        return self._renderer

    @property
    def executor(self) -> RemoteExecutor:
        """Get the remote executor."""
        if self._executor is None:
            self._executor = RemoteExecutor()
        return self._executor

    @property
    def lifecycle_service(self) -> VMLifecycleService:
        """Get the VM lifecycle service."""
        if self._lifecycle_service is None:
            self._lifecycle_service = VMLifecycleService(
                self.connection_config,
                session_manager=self.session_manager,
                renderer=self.renderer,
                executor=self.executor,
            )
        return self._lifecycle_service
