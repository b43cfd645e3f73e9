"""
client.py
- Thin HTTP client over the Docker Engine service endpoints:
    - GET  {base_url}/services
    - POST {base_url}/services/{id}/update?version={n}
- The engine is reached over plain HTTP (e.g. the unix socket exposed through socat).
- No caching and no retries. Every call goes to the engine.
"""

import requests
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from swarm_updater.lib.docker.errors import (
    ConflictError,
    NetworkError,
    ParseError,
    UpdateRejectedError,
)
from swarm_updater.lib.docker.models import Service

DEFAULT_TIMEOUT = 30  # seconds, per call

# Swarm reports a stale version this way, with a 500 on older engines.
OUT_OF_SEQUENCE = "update out of sequence"

_SERVICE_LIST = TypeAdapter(list[Service])


class DockerClient:
    def __init__(self, base_url, timeout=DEFAULT_TIMEOUT, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def list_services(self):
        """
        Fetch every service known to the swarm.

        Returns:
            list[Service]: The full, unfiltered list.

        Raises:
            NetworkError: Transport failure or non-2xx answer.
            ParseError: Body is not a list of services.
        """
        url = f"{self.base_url}/services"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"GET {url} failed: {e}") from e

        if not response.ok:
            raise NetworkError(f"GET {url} returned {response.status_code}: {response.text.strip()}")

        try:
            services = _SERVICE_LIST.validate_python(response.json())
        except (ValueError, ValidationError) as e:
            raise ParseError(f"Could not parse service list from {url}: {e}") from e

        logger.debug(f"[docker] Listed {len(services)} service(s)")
        return services

    def update_service(self, service_id, version, spec):
        """
        Replace a service's spec.

        Args:
            service_id (str): Service ID.
            version (int): Version index observed when the service was listed.
            spec (ServiceSpec): The complete new spec.

        Returns:
            str: The engine's answer body.
        """
        url = f"{self.base_url}/services/{service_id}/update"
        try:
            response = self.session.post(
                url,
                params={"version": version},
                json=spec.to_engine(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NetworkError(f"POST {url} failed: {e}") from e

        body = response.text.strip()
        if response.ok:
            logger.debug(f"[docker] Update accepted for {service_id}: {body}")
            return body

        if response.status_code == 409 or OUT_OF_SEQUENCE in body:
            raise ConflictError(service_id, version, body)
        raise UpdateRejectedError(service_id, response.status_code, body)

    def close(self):
        self.session.close()
