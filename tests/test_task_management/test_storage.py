"""Tests for backend selection, the no-op backend and storage configuration."""

from datetime import datetime
from pathlib import Path

import pytest

from weekly_todo.task_management.config import (
    DEFAULT_FALLBACK_ORDER,
    StorageConfig,
)
from weekly_todo.task_management.database import TaskDatabase
from weekly_todo.task_management.exceptions import (
    ConfigurationError,
    UnsupportedOperationError,
)
from weekly_todo.task_management.local_storage import LocalStorageTaskRepository
from weekly_todo.task_management.models import TaskCreate, TaskStatus
from weekly_todo.task_management.storage import (
    NoOpTaskRepository,
    create_repository,
    is_backend_supported,
)


@pytest.fixture
def config(tmp_path: Path) -> StorageConfig:
    """Configuration pointing at a temporary data directory."""
    return StorageConfig(
        database_path=str(tmp_path / "data" / "tasks.db"),
        local_storage_path=str(tmp_path / "data" / "local-storage.json"),
    )


@pytest.fixture
def unwritable_db_path(tmp_path: Path) -> str:
    """Database path whose parent directory cannot be created."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    return str(blocker / "tasks.db")


@pytest.mark.unit
@pytest.mark.asyncio
class TestNoOpTaskRepository:
    """Test cases for the no-op backend."""

    async def test_reads_are_empty(self) -> None:
        """Test every read returns nothing."""
        repo = NoOpTaskRepository()
        await repo.initialize()

        assert await repo.get_all() == []
        assert await repo.get_by_id("any") is None
        assert await repo.get_by_status(TaskStatus.UPCOMING) == []
        assert await repo.get_by_date_range(datetime.min, datetime.max) == []
        await repo.clear()
        await repo.close()

    async def test_mutations_are_unsupported(self) -> None:
        """Test every mutation raises UnsupportedOperationError."""
        repo = NoOpTaskRepository()

        with pytest.raises(UnsupportedOperationError):
            await repo.create(TaskCreate(content="Nope"))
        with pytest.raises(UnsupportedOperationError):
            await repo.update("id", {"content": "Nope"})
        with pytest.raises(UnsupportedOperationError):
            await repo.delete("id")
        with pytest.raises(UnsupportedOperationError):
            await repo.bulk_update([])


@pytest.mark.unit
class TestBackendSelection:
    """Test cases for create_repository."""

    def test_non_interactive_gets_noop(self, config: StorageConfig) -> None:
        """Test non-interactive contexts never touch storage."""
        config.interactive = False
        config.backend = "sqlite"
        assert isinstance(create_repository(config), NoOpTaskRepository)

    @pytest.mark.parametrize(
        "backend, expected",
        [
            ("sqlite", TaskDatabase),
            ("local", LocalStorageTaskRepository),
            ("noop", NoOpTaskRepository),
        ],
    )
    def test_explicit_backend(
        self, config: StorageConfig, backend: str, expected: type
    ) -> None:
        """Test an explicit backend name is honored."""
        config.backend = backend
        assert isinstance(create_repository(config), expected)

    def test_auto_prefers_sqlite(self, config: StorageConfig) -> None:
        """Test auto picks the first supported fallback."""
        assert isinstance(create_repository(config), TaskDatabase)

    def test_auto_falls_back_to_local(
        self, config: StorageConfig, unwritable_db_path: str
    ) -> None:
        """Test auto skips an unusable SQLite location."""
        config.database_path = unwritable_db_path
        assert isinstance(create_repository(config), LocalStorageTaskRepository)

    def test_unknown_backend_raises(self, config: StorageConfig) -> None:
        """Test unknown names raise ConfigurationError."""
        config.backend = "redis"
        with pytest.raises(ConfigurationError):
            create_repository(config)

    def test_unknown_fallback_raises(self, config: StorageConfig) -> None:
        """Test unknown fallback names raise ConfigurationError."""
        config.fallback_order = ("redis",)
        with pytest.raises(ConfigurationError):
            create_repository(config)

    def test_no_supported_fallback_raises(
        self, config: StorageConfig, unwritable_db_path: str
    ) -> None:
        """Test exhausting the fallback order raises ConfigurationError."""
        config.database_path = unwritable_db_path
        config.fallback_order = ("sqlite",)
        with pytest.raises(ConfigurationError):
            create_repository(config)

    def test_support_checks(self, config: StorageConfig) -> None:
        """Test support detection for each backend."""
        assert is_backend_supported("sqlite", config)
        assert is_backend_supported("local", config)
        assert is_backend_supported("noop", config)
        assert is_backend_supported("sqlite", StorageConfig(database_path=":memory:"))


@pytest.mark.unit
class TestStorageConfig:
    """Test cases for environment configuration."""

    def test_defaults(self) -> None:
        """Test an empty environment yields defaults."""
        config = StorageConfig.from_env({})

        assert config.backend == "auto"
        assert config.fallback_order == DEFAULT_FALLBACK_ORDER
        assert config.interactive is True

    def test_reads_environment(self) -> None:
        """Test environment variables override defaults."""
        config = StorageConfig.from_env(
            {
                "WEEKLY_TODO_BACKEND": " Local ",
                "WEEKLY_TODO_DB_PATH": "/tmp/custom.db",
                "WEEKLY_TODO_LOCAL_STORAGE_PATH": "/tmp/custom.json",
                "WEEKLY_TODO_FALLBACK": "local, sqlite,",
            }
        )

        assert config.backend == "local"
        assert config.database_path == "/tmp/custom.db"
        assert config.local_storage_path == "/tmp/custom.json"
        assert config.fallback_order == ("local", "sqlite")
