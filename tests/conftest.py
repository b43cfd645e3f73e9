"""
Shared pytest fixtures for swarm-updater tests.

Fixtures provided:
- engine_response: Factory for mocked requests.Response objects
- engine_service: Factory for service objects as the Docker Engine returns them
- make_service: Same, parsed into the Service model
- mock_session: requests.Session stand-in for the Docker client
- config: Default configuration with no files and no environment
"""

from unittest.mock import MagicMock

import pytest

from swarm_updater.core.config import Config
from swarm_updater.lib.docker.models import Service


def _engine_response(status_code=200, json_body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    if isinstance(json_body, Exception):
        response.json.side_effect = json_body
    else:
        response.json.return_value = json_body
    return response


@pytest.fixture
def engine_response():
    """Factory for mocked requests.Response objects."""
    return _engine_response


@pytest.fixture
def engine_service():
    """
    Build a service dict shaped like one entry of GET /services.

    Extra keyword arguments are merged into the Spec.
    """

    def build(service_id="svc1", name="web", image="app:1.0", version=5, labels=None, **spec_extra):
        spec = {
            "Name": name,
            "TaskTemplate": {
                "ContainerSpec": {"Image": image},
                "ForceUpdate": 0,
            },
            "Mode": {"Replicated": {"Replicas": 1}},
        }
        if labels is not None:
            spec["Labels"] = labels
        spec.update(spec_extra)
        return {
            "ID": service_id,
            "Version": {"Index": version},
            "CreatedAt": "2024-03-01T10:00:00.123456789Z",
            "UpdatedAt": "2024-03-02T11:30:00.5Z",
            "Spec": spec,
        }

    return build


@pytest.fixture
def make_service(engine_service):
    def build(**kwargs):
        return Service.model_validate(engine_service(**kwargs))

    return build


@pytest.fixture
def mock_session():
    """Mock requests.Session: empty service list, every update accepted."""
    session = MagicMock()
    session.get.return_value = _engine_response(json_body=[])
    session.post.return_value = _engine_response(text='{"Warnings":null}')
    return session


@pytest.fixture
def config():
    return Config()
