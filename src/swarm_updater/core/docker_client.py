"""
docker_client.py
- Builds the Docker Engine client and update executor from the process configuration.
- One client (and its HTTP session) is shared by every request the server handles.
"""

from loguru import logger

from swarm_updater.lib.docker.client import DockerClient
from swarm_updater.lib.update.executor import UpdateExecutor


def build_client(config):
    logger.debug(f"[docker] Engine API at {config.docker_url} (timeout {config.docker_timeout}s)")
    return DockerClient(config.docker_url, timeout=config.docker_timeout)


def build_executor(config, client=None):
    if config.dry_run:
        logger.warning("[update] Dry-run mode: services will be selected but not updated")
    return UpdateExecutor(client or build_client(config), dry_run=config.dry_run)
