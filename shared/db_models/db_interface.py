from typing import Optional, List, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy import select, delete

from shared.db_models.settings_models import (
    Base,
    SiteSetting,
    Module,
    ModuleSetting,
    SettingRecord,
    ModuleRecord,
    ModuleSettingRecord,
    ModuleAuditLog,
    AuditEntry,
    utc_now,
)
from shared.db_models.store import SettingsStore
from shared.common_utils.exceptions import StorageFailure
from shared.common_utils.logger import logger


class DatabaseInterface(SettingsStore):
    """SQLAlchemy backed settings store."""

    def __init__(self, database_url: str, echo: bool = False):
        """Initialize database interface."""
        self.database_url = database_url
        self.echo = echo
        self.engine = None
        self.session_factory = None

    async def connect(self):
        """Create database engine and session factory"""
        try:
            engine_options = {"echo": self.echo}
            if not self.database_url.startswith("sqlite"):
                engine_options.update(pool_size=5, max_overflow=10, pool_pre_ping=True)
            self.engine = create_async_engine(self.database_url, **engine_options)
            self.session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )
            logger.info("Database connection pool created successfully")
        except Exception as e:
            logger.error(f"Failed to create database connection pool: {str(e)}")
            raise StorageFailure(f"Failed to connect to settings database: {e}") from e

    async def close(self):
        """Close database connection pool"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Database connection pool closed successfully")

    async def create_schema(self):
        """Create settings tables if they do not exist. Migrations are preferred outside tests."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def __aenter__(self):
        """Context manager entry"""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        await self.close()

    def _session(self) -> AsyncSession:
        if self.session_factory is None:
            raise StorageFailure("Database interface is not connected")
        return self.session_factory()

    async def get_setting(self, key: str) -> Optional[SettingRecord]:
        """Get a core setting by key."""
        try:
            async with self._session() as session:
                row = await session.get(SiteSetting, key)
                return SettingRecord.model_validate(row) if row else None
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error getting setting {key}: {str(e)}")
            raise StorageFailure(f"Failed to read setting '{key}'") from e

    async def list_settings(self) -> List[SettingRecord]:
        try:
            async with self._session() as session:
                result = await session.execute(select(SiteSetting).order_by(SiteSetting.key))
                return [SettingRecord.model_validate(row) for row in result.scalars().all()]
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error listing settings: {str(e)}")
            raise StorageFailure("Failed to list settings") from e

    async def save_setting(self, key: str, value: Optional[str], modified_by: Optional[str] = None) -> SettingRecord:
        """Insert or update a core setting."""
        try:
            async with self._session() as session:
                async with session.begin():
                    row = await session.get(SiteSetting, key)
                    if row is None:
                        row = SiteSetting(key=key)
                        session.add(row)
                    row.value = value
                    row.modified_by = modified_by
                    row.last_modified = utc_now()
                return SettingRecord.model_validate(row)
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error saving setting {key}: {str(e)}")
            raise StorageFailure(f"Failed to save setting '{key}'") from e

    async def delete_setting(self, key: str) -> bool:
        try:
            async with self._session() as session:
                async with session.begin():
                    result = await session.execute(delete(SiteSetting).where(SiteSetting.key == key))
                return result.rowcount > 0
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error deleting setting {key}: {str(e)}")
            raise StorageFailure(f"Failed to delete setting '{key}'") from e

    async def get_module(self, module_id: str) -> Optional[ModuleRecord]:
        try:
            async with self._session() as session:
                row = await session.get(Module, module_id)
                return ModuleRecord.model_validate(row) if row else None
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error getting module {module_id}: {str(e)}")
            raise StorageFailure(f"Failed to read module '{module_id}'") from e

    async def list_modules(self) -> List[ModuleRecord]:
        try:
            async with self._session() as session:
                result = await session.execute(
                    select(Module).order_by(Module.load_order, Module.module_id)
                )
                return [ModuleRecord.model_validate(row) for row in result.scalars().all()]
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error listing modules: {str(e)}")
            raise StorageFailure("Failed to list modules") from e

    async def save_module(self, module: ModuleRecord) -> ModuleRecord:
        try:
            async with self._session() as session:
                async with session.begin():
                    await session.merge(Module(**module.model_dump()))
            return module
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error saving module {module.module_id}: {str(e)}")
            raise StorageFailure(f"Failed to save module '{module.module_id}'") from e

    async def delete_module(self, module_id: str) -> bool:
        try:
            async with self._session() as session:
                async with session.begin():
                    await session.execute(delete(ModuleSetting).where(ModuleSetting.module_id == module_id))
                    result = await session.execute(delete(Module).where(Module.module_id == module_id))
                return result.rowcount > 0
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error deleting module {module_id}: {str(e)}")
            raise StorageFailure(f"Failed to delete module '{module_id}'") from e

    async def get_module_settings(self, module_id: str) -> List[ModuleSettingRecord]:
        try:
            async with self._session() as session:
                result = await session.execute(
                    select(ModuleSetting)
                    .where(ModuleSetting.module_id == module_id)
                    .order_by(ModuleSetting.created_at, ModuleSetting.id)
                )
                return [ModuleSettingRecord.model_validate(row) for row in result.scalars().all()]
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error getting settings for module {module_id}: {str(e)}")
            raise StorageFailure(f"Failed to read settings of module '{module_id}'") from e

    async def save_module_setting(self, record: ModuleSettingRecord) -> ModuleSettingRecord:
        try:
            async with self._session() as session:
                async with session.begin():
                    await session.merge(ModuleSetting(**record.model_dump()))
            return record
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error saving setting {record.key} of module {record.module_id}: {str(e)}")
            raise StorageFailure(f"Failed to save setting '{record.key}'") from e

    async def commit_module_batch(
        self,
        module: Optional[ModuleRecord],
        upserts: Sequence[ModuleSettingRecord],
        deletes: Sequence[str],
    ) -> None:
        """Apply all reconciliation changes of one module in a single transaction."""
        try:
            async with self._session() as session:
                async with session.begin():
                    if module is not None:
                        await session.merge(Module(**module.model_dump()))
                    if deletes:
                        await session.execute(delete(ModuleSetting).where(ModuleSetting.id.in_(list(deletes))))
                    for record in upserts:
                        await session.merge(ModuleSetting(**record.model_dump()))
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error committing settings batch: {str(e)}")
            raise StorageFailure("Failed to commit module settings batch") from e

    async def add_audit_entry(self, entry: AuditEntry) -> AuditEntry:
        try:
            async with self._session() as session:
                async with session.begin():
                    session.add(ModuleAuditLog(**entry.model_dump()))
            return entry
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error writing audit entry for module {entry.module_id}: {str(e)}")
            raise StorageFailure(f"Failed to write audit entry for module '{entry.module_id}'") from e

    async def list_audit_entries(
        self,
        module_id: Optional[str] = None,
        operation: Optional[str] = None,
        limit: int = 50,
    ) -> List[AuditEntry]:
        try:
            async with self._session() as session:
                query = select(ModuleAuditLog)
                if module_id is not None:
                    query = query.where(ModuleAuditLog.module_id == module_id)
                if operation is not None:
                    query = query.where(ModuleAuditLog.operation == operation)
                result = await session.execute(
                    query.order_by(ModuleAuditLog.timestamp.desc()).limit(limit)
                )
                return [AuditEntry.model_validate(row) for row in result.scalars().all()]
        except StorageFailure:
            raise
        except Exception as e:
            logger.error(f"Error listing audit entries: {str(e)}")
            raise StorageFailure("Failed to list audit entries") from e
