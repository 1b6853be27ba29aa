"""Pytest configuration for the test suite."""

import contextlib
import sys
import uuid
from pathlib import Path
from typing import Any, Dict, Generator

import docker
import pytest
from docker.errors import DockerException

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from sqlrecord.config import DatabaseConfig
from sqlrecord.database_manager import DatabaseManager
from sqlrecord.docker_manager import DockerManager
from tests.helpers.fake_driver import FakeConnection

TEST_TABLE_NAME = "test_table"
TEST_DATA = [
    (1, "Alice", 30, "alice@example.com"),
    (2, "Bob", 25, "bob@example.com"),
    (3, "Charlie", 35, "charlie@example.com"),
]


@pytest.fixture
def db_config() -> DatabaseConfig:
    return DatabaseConfig(host="db.example.com", user="app", password="secret", database="appdb")


@pytest.fixture
def fake_connection() -> FakeConnection:
    """A fake driver connection with an empty response queue."""
    return FakeConnection()


@pytest.fixture
def db(db_config: DatabaseConfig, fake_connection: FakeConnection) -> Generator[DatabaseManager, None, None]:
    """A DatabaseManager connected to the fake driver."""
    manager = DatabaseManager(db_config, connection_factory=fake_connection)
    manager.connect()
    yield manager
    with contextlib.suppress(Exception):
        manager.close()


def _docker_available() -> bool:
    try:
        docker.from_env().ping()
    except DockerException:
        return False
    return True


@pytest.fixture(scope="session")
def docker_mysql_session() -> Generator[DockerManager, None, None]:
    """Launch a shared MySQL Docker container for the test session."""
    if not _docker_available():
        pytest.skip("Docker daemon is not reachable")

    manager = DockerManager()
    manager.start_mysql_container(
        container_name=f"pytest-mysql-{uuid.uuid4().hex[:8]}",
        root_password="pytest_pass",
        database="pytest_db",
        port=33061,
    )
    try:
        yield manager
    finally:
        manager.remove_container()


@pytest.fixture
def mysql_connection(docker_mysql_session: DockerManager) -> Generator[Dict[str, Any], None, None]:
    """Provide per-test connection parameters for an isolated database."""
    params = docker_mysql_session.get_connection_params()
    tmp_db = docker_mysql_session.add_tmp_db()
    params["database"] = tmp_db
    try:
        yield params
    finally:
        with contextlib.suppress(Exception):
            docker_mysql_session.remove_tmp_db(tmp_db)


@pytest.fixture
def live_db(mysql_connection: Dict[str, Any]) -> Generator[DatabaseManager, None, None]:
    """Provide a connected DatabaseManager bound to the per-test MySQL database."""
    config = DatabaseConfig(
        host=str(mysql_connection["host"]),
        port=int(mysql_connection["port"]),
        user=str(mysql_connection["user"]),
        password=str(mysql_connection["password"]),
        database=str(mysql_connection["database"]),
    )
    manager = DatabaseManager(config)
    manager.connect()
    try:
        yield manager
    finally:
        with contextlib.suppress(Exception):
            manager.close()


@pytest.fixture
def initialized_db(live_db: DatabaseManager) -> DatabaseManager:
    """Seed the per-test database with sample data."""
    live_db.query(
        f"""
        CREATE TABLE {TEST_TABLE_NAME} (
            id INT(11) UNSIGNED NOT NULL AUTO_INCREMENT PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            age INT DEFAULT 0,
            score DECIMAL(10,4) DEFAULT '0.0000',
            email VARCHAR(128) UNIQUE,
            position INT DEFAULT 0,
            created_at DATETIME NULL
        )
        """
    )
    for row in TEST_DATA:
        live_db.execute(f"INSERT INTO {TEST_TABLE_NAME} (id, name, age, email) VALUES (?, ?, ?, ?)", row)
    return live_db
