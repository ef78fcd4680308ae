import json
from typing import Any, Dict, List, Optional

from shared.common_utils.logger import logger
from shared.db_models.settings_models import AuditEntry, ModuleOperation
from shared.db_models.store import SettingsStore

SYSTEM_ACTOR = "System"
ENVIRONMENT_ACTOR = "Environment"


def serialize_changes(changes: Dict[str, Any]) -> str:
    return json.dumps(changes, sort_keys=True, default=str)


class ModuleAuditService:
    """Audit trail of lifecycle and configuration operations on extension modules.

    Writing an entry never fails the operation being audited: a store error is
    logged and the entry is dropped.
    """

    def __init__(self, store: SettingsStore):
        self.store = store

    async def record(
        self,
        module_id: str,
        module_name: str,
        operation: ModuleOperation,
        username: Optional[str] = None,
        success: bool = True,
        changes: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[AuditEntry]:
        entry = AuditEntry(
            module_id=module_id,
            module_name=module_name,
            operation=operation,
            username=username or SYSTEM_ACTOR,
            success=success,
            changes=serialize_changes(changes) if changes else None,
            error_message=error_message,
            notes=notes,
        )
        try:
            await self.store.add_audit_entry(entry)
        except Exception as e:
            logger.error(f"Failed to write audit entry for module {module_id}: {e}")
            return None
        logger.debug(
            f"Audit: module={module_id} operation={entry.operation} user={entry.username} success={success}"
        )
        return entry

    async def history(
        self,
        module_id: Optional[str] = None,
        operation: Optional[ModuleOperation] = None,
        limit: int = 50,
    ) -> List[AuditEntry]:
        return await self.store.list_audit_entries(module_id, operation, limit)
