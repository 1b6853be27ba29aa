"""Docker manager for MySQL container lifecycle management."""

import json
import logging
import time
import uuid
from pathlib import Path
from types import TracebackType
from typing import Any, Dict, Optional, Type, Union

import docker
import pymysql
from docker.errors import APIError, ImageNotFound, NotFound
from docker.models.images import Image

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_TAG = "mysql:8.4"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "docker_manager.json"


class DockerManager:
    """Manages MySQL Docker container lifecycle."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None) -> None:
        """Initialize Docker client and load configuration."""
        self.client = docker.from_env()
        self.container: Optional[Any] = None
        self.connection_params: Dict[str, Any] = {}
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self.image_tag = DEFAULT_IMAGE_TAG
        self._load_configuration()

    def start_mysql_container(
        self,
        container_name: str = "sqlrecord_test_mysql",
        root_password: str = "testpass",
        database: str = "testdb",
        port: int = 3306,
        image_tag: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Start a MySQL container and return connection parameters.

        Args:
            container_name: Name for the Docker container
            root_password: Password of the MySQL root user
            database: Database created when the server first starts
            port: Host port to bind to
            image_tag: Optional override for the MySQL Docker image tag

        Returns:
            Dictionary with connection parameters
        """
        resolved_image = image_tag or self.image_tag
        logger.info("Starting MySQL container '%s' with image '%s'", container_name, resolved_image)

        try:
            self._remove_existing(container_name)
            self.ensure_image(resolved_image)

            container_port = 3306
            self.container = self.client.containers.run(
                resolved_image,
                name=container_name,
                environment={
                    "MYSQL_ROOT_PASSWORD": root_password,
                    "MYSQL_DATABASE": database,
                },
                ports={f"{container_port}/tcp": port},
                detach=True,
                remove=False,
            )

            self._wait_for_mysql("root", root_password, database, port)

            self.connection_params = {
                "host": "127.0.0.1",
                "port": port,
                "user": "root",
                "password": root_password,
                "database": database,
                "container_port": container_port,
                "image": resolved_image,
            }
            return self.connection_params

        except Exception as e:
            logger.error("Error starting MySQL container '%s': %s", container_name, e)
            raise

    def _remove_existing(self, container_name: str) -> None:
        try:
            existing = self.client.containers.get(container_name)
        except NotFound:
            logger.debug("No existing container '%s' found", container_name)
            return
        logger.info("Removing existing container '%s' (%s)", container_name, existing.status)
        existing.remove(force=True)

    def _wait_for_mysql(
        self, user: str, password: str, database: str, port: int, max_attempts: int = 30
    ) -> None:
        """Wait for MySQL to be ready to accept connections."""
        logger.info("Waiting for MySQL to be ready on port %s", port)

        for attempt in range(max_attempts):
            try:
                logger.debug("Attempt %s/%s to connect to MySQL", attempt + 1, max_attempts)
                conn = pymysql.connect(
                    host="127.0.0.1",
                    port=port,
                    user=user,
                    password=password,
                    database=database,
                    connect_timeout=5,
                )
                conn.close()
                logger.info("MySQL is ready to accept connections")
                return
            except pymysql.err.MySQLError as e:
                if attempt == max_attempts - 1:
                    logger.error("Exceeded maximum attempts waiting for MySQL: %s", e)
                    raise RuntimeError("MySQL failed to start within timeout") from e
                logger.debug("Connection failed (%s); retrying in 2 seconds", e)
                time.sleep(2)

    def stop_container(self) -> None:
        """Stop the MySQL container."""
        if self.container:
            try:
                logger.info("Stopping container '%s'", self.container.name)
                self.container.stop()
            except Exception as e:
                logger.warning("Error stopping container '%s': %s", getattr(self.container, "name", "<unknown>"), e)

    def remove_container(self) -> None:
        """Remove the MySQL container."""
        if self.container:
            try:
                name = self.container.name
                logger.info("Removing container '%s'", name)
                self.container.remove(force=True)
                self.container = None
            except Exception as e:
                logger.warning("Error removing container '%s': %s", getattr(self.container, "name", "<unknown>"), e)

    def get_connection_params(self) -> Dict[str, Any]:
        """Get connection parameters for the running container."""
        return self.connection_params.copy()

    def _admin_connection(self) -> "pymysql.connections.Connection":
        if not self.connection_params:
            raise RuntimeError("MySQL container is not running")
        params = self.connection_params
        return pymysql.connect(
            host=params["host"],
            port=params["port"],
            user=params["user"],
            password=params["password"],
            autocommit=True,
        )

    def add_tmp_db(self) -> str:
        """Create a temporary database with a unique GUID-based name.

        Returns:
            The name of the created temporary database
        """
        test_db_name = f"test_db_{uuid.uuid4().hex[:8]}"
        logger.info("Creating temporary database '%s'", test_db_name)

        try:
            conn = self._admin_connection()
            try:
                with conn.cursor() as cursor:
                    cursor.execute(f"CREATE DATABASE `{test_db_name}`")
            finally:
                conn.close()
            return test_db_name
        except Exception as e:
            logger.error("Error creating temporary database '%s': %s", test_db_name, e)
            raise

    def remove_tmp_db(self, db_name: str) -> None:
        """Drop a temporary database by name."""
        logger.info("Removing temporary database '%s'", db_name)

        try:
            conn = self._admin_connection()
            try:
                with conn.cursor() as cursor:
                    cursor.execute(f"DROP DATABASE IF EXISTS `{db_name}`")
            finally:
                conn.close()
        except Exception as e:
            logger.warning("Error removing temporary database '%s': %s", db_name, e)
            raise

    def __enter__(self) -> "DockerManager":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Remove the container when leaving the context."""
        self.remove_container()

    def _load_configuration(self) -> None:
        """Load the configuration file to determine the MySQL image tag."""
        if not self.config_path.exists():
            logger.debug("Configuration file '%s' not found; using default image '%s'", self.config_path, DEFAULT_IMAGE_TAG)
            return
        try:
            with self.config_path.open("r", encoding="utf-8") as config_file:
                config_data = json.load(config_file)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(
                "Could not read configuration file '%s': %s. Using default image '%s'",
                self.config_path,
                exc,
                DEFAULT_IMAGE_TAG,
            )
            return

        image_tag = config_data.get("mysql_image")
        if image_tag:
            self.image_tag = image_tag
            logger.info("Loaded MySQL image tag '%s' from configuration", image_tag)

    def ensure_image(self, image_tag: Optional[str] = None) -> Image:
        """Ensure the requested Docker image is available locally, pulling if needed."""
        resolved_image = image_tag or self.image_tag
        try:
            return self.client.images.get(resolved_image)
        except ImageNotFound:
            logger.info("Docker image '%s' not found locally. Pulling...", resolved_image)
            return self.client.images.pull(resolved_image)
        except APIError as exc:
            logger.error("Docker API error when ensuring image '%s': %s", resolved_image, exc)
            raise
