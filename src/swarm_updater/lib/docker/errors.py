"""
errors.py
- Failures raised by the Docker Engine client.
- Listing failures (NetworkError, ParseError) abort a whole update request.
- Update failures (NetworkError, ConflictError, UpdateRejectedError) are scoped to one service.
"""


class DockerError(Exception):
    """Base class for everything the Docker Engine client raises."""

    kind = "docker"


class NetworkError(DockerError):
    """The engine could not be reached, timed out, or answered with an error status."""

    kind = "network"


class ParseError(DockerError):
    """The engine answered, but the body is not the expected shape."""

    kind = "parse"


class ConflictError(DockerError):
    """The version token sent with an update is stale."""

    kind = "conflict"

    def __init__(self, service_id, version, message):
        super().__init__(f"Service {service_id} is no longer at version {version}: {message}")
        self.service_id = service_id
        self.version = version


class UpdateRejectedError(DockerError):
    """The engine refused an update for a reason other than a version conflict."""

    kind = "rejected"

    def __init__(self, service_id, status_code, message):
        super().__init__(f"Service {service_id} update rejected ({status_code}): {message}")
        self.service_id = service_id
        self.status_code = status_code
