"""
executor.py
- Rolls the services matched by an update request onto a new image tag.
- Flow per request:
    - List services once and select from that snapshot
    - For every match, rewrite the spec copy-on-write and send it with the listed version
    - Update calls run concurrently; a failure is recorded for that service only
- Outcomes come back in selection order, not completion order.
"""

import asyncio

from loguru import logger

from swarm_updater.lib.docker.errors import DockerError
from swarm_updater.lib.update.image_ref import parse_image_reference, rewrite_image_reference
from swarm_updater.lib.update.models import OutcomeStatus, UpdateOutcome
from swarm_updater.lib.update.selector import select_services


class UpdateExecutor:
    def __init__(self, client, dry_run=False):
        self.client = client
        self.dry_run = dry_run

    async def execute(self, request):
        """
        Run one update request end to end.

        Raises:
            NetworkError, ParseError: The service listing failed. Nothing was updated.

        Returns:
            list[UpdateOutcome]: One per selected service; empty when nothing matched.
        """
        services = await asyncio.to_thread(self.client.list_services)
        selected = select_services(services, request)

        if not selected:
            target = request.service or f"{request.image}:*"
            logger.info(f"[update] No service matches {target}")
            return []

        new_image = rewrite_image_reference(request.image, request.tag)
        logger.info(f"[update] Rolling {len(selected)} service(s) to {new_image}")

        outcomes = await asyncio.gather(
            *(self._update_one(service, new_image) for service in selected)
        )
        return list(outcomes)

    async def _update_one(self, service, new_image):
        # Captured before anything is sent; the version is the one just listed.
        service_id = service.id
        version = service.version.index
        previous = parse_image_reference(service.image)
        new_tag = parse_image_reference(new_image).tag

        def outcome(status, error=None):
            return UpdateOutcome(
                id=service_id,
                version=version,
                created_at=service.created_at,
                updated_at=service.updated_at,
                name=service.name,
                image=previous.repository,
                from_tag=previous.tag,
                to_tag=new_tag,
                status=status,
                error_kind=getattr(error, "kind", "internal") if error else None,
                error=str(error) if error else None,
            )

        new_spec = service.spec.with_image(new_image)

        if self.dry_run:
            logger.info(f"[DRY RUN] Would update {service.name} ({service_id}) {service.image} → {new_image} at version {version}")
            return outcome(OutcomeStatus.DRY_RUN)

        logger.info(f"[update] 🔁 Updating {service.name} ({service_id}) {service.image} → {new_image} at version {version}")
        try:
            await asyncio.to_thread(self.client.update_service, service_id, version, new_spec)
        except DockerError as e:
            logger.error(f"[update] ❌ Failed to update {service.name} ({service_id}): {e}")
            return outcome(OutcomeStatus.FAILED, e)
        except Exception as e:
            logger.exception(f"[update] 🔥 Unexpected error updating {service.name} ({service_id})")
            return outcome(OutcomeStatus.FAILED, e)

        logger.info(f"[update] ✅ Updated {service.name} to {new_image}")
        return outcome(OutcomeStatus.UPDATED)
