"""
image_ref.py
- Splits `repository[:tag][@digest]` image references and builds new ones.
- The digest is always dropped: it identifies the old image, not the new tag.
"""

from typing import NamedTuple


class ImageReference(NamedTuple):
    repository: str
    tag: str


def parse_image_reference(reference):
    """
    Parse an image reference into (repository, tag).

    The tag separator is the last ':' after the last '/', so a registry port
    (`registry:5000/app:1.0`) stays part of the repository. A reference
    without a tag parses to tag "", which is only ever used for display.
    """
    reference = reference.split("@", 1)[0]
    slash = reference.rfind("/")
    colon = reference.rfind(":")
    if colon <= slash:
        return ImageReference(reference, "")
    return ImageReference(reference[:colon], reference[colon + 1:])


def build_image_reference(repository, tag):
    return f"{repository}:{tag}"


def rewrite_image_reference(reference, new_tag):
    """Return `repository:new_tag` for the repository of `reference`."""
    return build_image_reference(parse_image_reference(reference).repository, new_tag)
