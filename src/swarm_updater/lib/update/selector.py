"""
selector.py
- Decides which listed services an update request applies to.
- An explicit service name wins outright; otherwise services are matched on image repository.
"""

from loguru import logger


def image_prefix(image):
    # The ':' keeps "foo" from matching "foobar:1.0".
    return f"{image}:"


def matches(service, request):
    if request.service is not None:
        return service.name == request.service
    return service.image.startswith(image_prefix(request.image))


def select_services(services, request):
    """
    Return the services `request` targets, in listing order.

    Args:
        services (list[Service]): A complete listing from the engine.
        request (UpdateRequest): What to update.

    Returns:
        list[Service]: Possibly empty. A name that matches nothing does not
        fall back to image matching.
    """
    selected = [service for service in services if matches(service, request)]

    if request.service is not None:
        logger.debug(f"[select] {len(selected)} service(s) named '{request.service}'")
    else:
        logger.debug(f"[select] {len(selected)} service(s) running {image_prefix(request.image)}*")
    return selected
