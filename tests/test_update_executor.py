"""
Unit tests for the update executor: selection, version handling,
per-service failure isolation and dry-run.
"""

import threading
from unittest.mock import Mock

import pytest

from swarm_updater.lib.docker.client import DockerClient
from swarm_updater.lib.docker.errors import ConflictError, NetworkError, ParseError
from swarm_updater.lib.docker.models import STACK_IMAGE_LABEL
from swarm_updater.lib.update.executor import UpdateExecutor
from swarm_updater.lib.update.models import OutcomeStatus, UpdateRequest


@pytest.fixture
def docker():
    """Mock Docker client with an empty swarm."""
    client = Mock(spec=DockerClient)
    client.list_services.return_value = []
    client.update_service.return_value = "ok"
    return client


@pytest.mark.unit
class TestUpdateExecutor:
    @pytest.mark.asyncio
    async def test_updates_matching_service(self, docker, make_service):
        service = make_service(service_id="svc1", name="web", image="app:1.0", version=5)
        docker.list_services.return_value = [service, make_service(service_id="svc2", image="db:15")]

        outcomes = await UpdateExecutor(docker).execute(UpdateRequest(image="app", tag="2.0"))

        docker.update_service.assert_called_once()
        service_id, version, spec = docker.update_service.call_args.args
        assert (service_id, version) == ("svc1", 5)
        assert spec.image == "app:2.0"
        assert service.image == "app:1.0"

        [outcome] = outcomes
        assert outcome.status == OutcomeStatus.UPDATED
        assert (outcome.id, outcome.version, outcome.name) == ("svc1", 5, "web")
        assert (outcome.image, outcome.from_tag, outcome.to_tag) == ("app", "1.0", "2.0")
        assert outcome.error is None

    @pytest.mark.asyncio
    async def test_version_comes_from_this_listing(self, docker, make_service):
        executor = UpdateExecutor(docker)
        request = UpdateRequest(image="app", tag="2.0")

        docker.list_services.return_value = [make_service(version=5)]
        await executor.execute(request)
        docker.list_services.return_value = [make_service(version=9)]
        await executor.execute(request)

        versions = [c.args[1] for c in docker.update_service.call_args_list]
        assert versions == [5, 9]
        assert docker.list_services.call_count == 2

    @pytest.mark.asyncio
    async def test_conflict_does_not_stop_siblings(self, docker, make_service):
        docker.list_services.return_value = [
            make_service(service_id=f"s{i}", name=f"web{i}", image="app:1.0", version=i)
            for i in (1, 2, 3)
        ]

        def update(service_id, version, spec):
            if service_id == "s2":
                raise ConflictError(service_id, version, "update out of sequence")
            return "ok"

        docker.update_service.side_effect = update

        outcomes = await UpdateExecutor(docker).execute(UpdateRequest(image="app", tag="2.0"))

        assert [o.id for o in outcomes] == ["s1", "s2", "s3"]
        assert [o.status for o in outcomes] == [
            OutcomeStatus.UPDATED,
            OutcomeStatus.FAILED,
            OutcomeStatus.UPDATED,
        ]
        assert outcomes[1].error_kind == "conflict"
        assert docker.update_service.call_count == 3

    @pytest.mark.asyncio
    async def test_network_error_on_update_is_scoped(self, docker, make_service):
        docker.list_services.return_value = [make_service()]
        docker.update_service.side_effect = NetworkError("reset by peer")

        [outcome] = await UpdateExecutor(docker).execute(UpdateRequest(image="app", tag="2.0"))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == "network"
        assert "reset by peer" in outcome.error

    @pytest.mark.asyncio
    async def test_no_match_is_empty(self, docker, make_service):
        docker.list_services.return_value = [make_service(image="db:15")]

        outcomes = await UpdateExecutor(docker).execute(UpdateRequest(image="app", tag="2.0"))

        assert outcomes == []
        docker.update_service.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [NetworkError("down"), ParseError("garbage")])
    async def test_listing_failure_aborts(self, docker, error):
        docker.list_services.side_effect = error

        with pytest.raises(type(error)):
            await UpdateExecutor(docker).execute(UpdateRequest(image="app", tag="2.0"))

        docker.update_service.assert_not_called()

    @pytest.mark.asyncio
    async def test_explicit_name_uses_requested_image(self, docker, make_service):
        docker.list_services.return_value = [make_service(name="x", image="bar:9")]

        [outcome] = await UpdateExecutor(docker).execute(
            UpdateRequest(image="app", tag="2.0", service="x")
        )

        assert docker.update_service.call_args.args[2].image == "app:2.0"
        assert (outcome.image, outcome.from_tag) == ("bar", "9")

    @pytest.mark.asyncio
    async def test_stack_label_is_synced(self, docker, make_service):
        docker.list_services.return_value = [make_service(labels={STACK_IMAGE_LABEL: "app:1.0@sha256:ab"})]

        await UpdateExecutor(docker).execute(UpdateRequest(image="app", tag="2.0"))

        assert docker.update_service.call_args.args[2].labels == {STACK_IMAGE_LABEL: "app:2.0"}

    @pytest.mark.asyncio
    async def test_untagged_service_reports_empty_from_tag(self, docker, make_service):
        docker.list_services.return_value = [
            make_service(service_id="a", name="a", image="app:1.0@sha256:abcd"),
            make_service(service_id="b", name="b", image="app"),
        ]

        outcomes = await UpdateExecutor(docker).execute(
            UpdateRequest(image="app", tag="2.0", service="b")
        )

        assert [o.from_tag for o in outcomes] == [""]
        assert docker.update_service.call_args.args[2].image == "app:2.0"

    @pytest.mark.asyncio
    async def test_updates_run_concurrently(self, docker, make_service):
        docker.list_services.return_value = [
            make_service(service_id=f"s{i}", name=f"web{i}") for i in range(3)
        ]
        barrier = threading.Barrier(3, timeout=5)

        def update(service_id, version, spec):
            # Only passes once all three calls are in flight at the same time.
            barrier.wait()
            return "ok"

        docker.update_service.side_effect = update

        outcomes = await UpdateExecutor(docker).execute(UpdateRequest(image="app", tag="2.0"))

        assert all(o.status == OutcomeStatus.UPDATED for o in outcomes)

    @pytest.mark.asyncio
    async def test_dry_run_sends_nothing(self, docker, make_service):
        docker.list_services.return_value = [make_service()]

        [outcome] = await UpdateExecutor(docker, dry_run=True).execute(UpdateRequest(image="app", tag="2.0"))

        docker.update_service.assert_not_called()
        assert outcome.status == OutcomeStatus.DRY_RUN
        assert outcome.ok
