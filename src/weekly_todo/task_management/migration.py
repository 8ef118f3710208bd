"""One-time migration of tasks from local storage into the indexed backend."""

import asyncio
import json
import logging
from enum import Enum

from .config import MIGRATION_FLAG_KEY, TASKS_STORAGE_KEY
from .exceptions import StorageError, ValidationError
from .interfaces import TaskRepository
from .local_storage import LocalStorage
from .models import MigrationResult, Task, is_valid_record

logger = logging.getLogger(__name__)

FLAG_DONE = "true"


class MigrationState(str, Enum):
    """Migration state persisted through the completion flag."""

    PENDING = "pending"
    DONE = "done"


class MigrationCoordinator:
    """
    Moves tasks from the legacy local storage into a target backend once.

    The completion flag lives in the legacy store next to the task data and is
    only read or written here. Calls to ``migrate`` are serialized and the
    flag is checked again under the lock, so redundant or concurrent calls
    never insert records twice.
    """

    def __init__(
        self,
        legacy: LocalStorage,
        target: TaskRepository,
        data_key: str = TASKS_STORAGE_KEY,
        flag_key: str = MIGRATION_FLAG_KEY,
    ) -> None:
        """
        Initialize the coordinator.

        Args:
            legacy: Local storage holding the legacy task collection
            target: Backend receiving the migrated tasks
            data_key: Key of the legacy task collection
            flag_key: Key of the completion flag
        """
        self._legacy = legacy
        self._target = target
        self._data_key = data_key
        self._flag_key = flag_key
        self._lock = asyncio.Lock()

    @property
    def state(self) -> MigrationState:
        if self._legacy.get_item(self._flag_key) == FLAG_DONE:
            return MigrationState.DONE
        return MigrationState.PENDING

    def is_migration_needed(self) -> bool:
        """Check if the flag is unset and legacy data exists."""
        return (
            self.state == MigrationState.PENDING
            and self._legacy.get_item(self._data_key) is not None
        )

    def reset_flag(self) -> None:
        """Mark the migration as pending again."""
        self._legacy.remove_item(self._flag_key)

    def _mark_done(self) -> None:
        self._legacy.set_item(self._flag_key, FLAG_DONE)

    def _valid_tasks(self, records: list[object]) -> list[Task]:
        tasks = []
        for index, record in enumerate(records):
            if not is_valid_record(record):
                continue
            try:
                tasks.append(Task.from_dict(record))
            except ValidationError as e:
                logger.debug(f"Dropping legacy record at index {index}: {e}")

        dropped = len(records) - len(tasks)
        if dropped:
            logger.warning(f"Dropped {dropped} invalid legacy task records")
        return tasks

    async def migrate(self) -> MigrationResult:
        """
        Run the migration if it has not completed yet.

        Failures never raise: they are reported in the result, the flag stays
        pending and the legacy data is left untouched so a later run can retry.

        Returns:
            MigrationResult with the number of migrated tasks
        """
        async with self._lock:
            if self.state == MigrationState.DONE:
                return MigrationResult(success=True, migrated_count=0)

            flag_set = False
            try:
                raw = self._legacy.get_item(self._data_key)
                if raw is None:
                    self._mark_done()
                    return MigrationResult(success=True, migrated_count=0)

                records = json.loads(raw)
                if not isinstance(records, list) or not records:
                    self._mark_done()
                    return MigrationResult(success=True, migrated_count=0)

                tasks = self._valid_tasks(records)
                if not tasks:
                    self._mark_done()
                    return MigrationResult(success=True, migrated_count=0)

                await self._target.bulk_update(tasks)

                self._mark_done()
                flag_set = True

                self._legacy.remove_item(self._data_key)
            except Exception as e:
                logger.error(f"Migration failed: {e}")
                if flag_set:
                    self._rollback_flag()
                return MigrationResult(success=False, migrated_count=0, error=str(e))

            logger.info(f"Migration complete: {len(tasks)} tasks migrated")
            return MigrationResult(success=True, migrated_count=len(tasks))

    def _rollback_flag(self) -> None:
        try:
            self.reset_flag()
        except StorageError as e:
            logger.error(f"Could not reset migration flag after failure: {e}")
