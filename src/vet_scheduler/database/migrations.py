"""
Database migration utilities for the vet-scheduler package.

Thin wrapper around Alembic for applying and inspecting the schema of the
scheduling tables.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from alembic.util.exc import CommandError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from ..exceptions import MigrationException

logger = logging.getLogger(__name__)


class MigrationManager:
    """Manager for database migrations using Alembic."""

    def __init__(
        self,
        alembic_config_path: Optional[str] = None,
        database_url: Optional[str] = None,
    ):
        """
        Initialize the migration manager.

        Args:
            alembic_config_path: Path to alembic.ini file
            database_url: Database URL override
        """
        self.alembic_config_path = alembic_config_path or self._find_alembic_config()
        self.database_url = database_url
        self._alembic_config: Optional[Config] = None

    def _find_alembic_config(self) -> str:
        """Find the alembic.ini configuration file."""
        possible_paths = [
            "alembic.ini",
            "../alembic.ini",
            os.path.join(os.path.dirname(__file__), "../../../alembic.ini"),
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return os.path.abspath(path)

        raise MigrationException("Could not find alembic.ini configuration file")

    @property
    def alembic_config(self) -> Config:
        """Get the Alembic configuration object."""
        if self._alembic_config is None:
            self._alembic_config = Config(self.alembic_config_path)

            if self.database_url:
                self._alembic_config.set_main_option(
                    "sqlalchemy.url", self.database_url
                )

        return self._alembic_config

    def upgrade_database(self, revision: str = "head", sql: bool = False) -> None:
        """
        Upgrade database to a specific revision.

        Raises:
            MigrationException: If upgrade fails
        """
        try:
            logger.info(f"Upgrading database to revision: {revision}")
            command.upgrade(self.alembic_config, revision, sql=sql)
            logger.info(f"Successfully upgraded database to {revision}")
        except (CommandError, SQLAlchemyError) as e:
            logger.error(f"Failed to upgrade database: {e}")
            raise MigrationException(
                f"Failed to upgrade database: {e}",
                migration_version=revision,
                original_error=e,
            ) from e

    def downgrade_database(self, revision: str, sql: bool = False) -> None:
        """
        Downgrade database to a specific revision.

        Raises:
            MigrationException: If downgrade fails
        """
        try:
            logger.info(f"Downgrading database to revision: {revision}")
            command.downgrade(self.alembic_config, revision, sql=sql)
            logger.info(f"Successfully downgraded database to {revision}")
        except (CommandError, SQLAlchemyError) as e:
            logger.error(f"Failed to downgrade database: {e}")
            raise MigrationException(
                f"Failed to downgrade database: {e}",
                migration_version=revision,
                original_error=e,
            ) from e

    async def get_current_revision(self, engine: AsyncEngine) -> Optional[str]:
        """
        Get the revision currently stamped on the database.

        Returns:
            Current revision ID or None if no migrations applied
        """

        def _current(connection) -> Optional[str]:
            return MigrationContext.configure(connection).get_current_revision()

        try:
            async with engine.connect() as conn:
                return await conn.run_sync(_current)
        except SQLAlchemyError as e:
            logger.error(f"Failed to get current revision: {e}")
            raise MigrationException(
                f"Failed to get current revision: {e}", original_error=e
            ) from e

    def get_head_revision(self) -> Optional[str]:
        """Return the newest revision available in the scripts directory."""
        return ScriptDirectory.from_config(self.alembic_config).get_current_head()

    def get_migration_history(self) -> List[Dict[str, Any]]:
        """
        Get the migration history, newest first.

        Returns:
            List of migration information dictionaries
        """
        script_dir = ScriptDirectory.from_config(self.alembic_config)
        return [
            {
                "revision": revision.revision,
                "down_revision": revision.down_revision,
                "doc": revision.doc,
            }
            for revision in script_dir.walk_revisions()
        ]

    async def is_up_to_date(self, engine: AsyncEngine) -> bool:
        """Check whether the database is stamped at the head revision."""
        current = await self.get_current_revision(engine)
        head = self.get_head_revision()
        if current != head:
            logger.warning(f"Database at revision {current}, head is {head}")
            return False
        return True
