import logging
from typing import Optional

LOG = logging.getLogger(__name__)

TagList = list[dict[str, str]]


def validate_tags(tags) -> list[str]:
    """Returns the problems of a configured tag map, empty if it is a map of strings."""
    if tags is None:
        return []
    if not isinstance(tags, dict):
        return [f"tags must be a map of strings, got {type(tags).__name__}"]
    return [
        f"tags: key {key!r} must map to a string"
        for key, value in tags.items()
        if not isinstance(key, str) or not isinstance(value, str)
    ]


def merge_tags(
    default_tags: Optional[dict[str, str]], tags: Optional[dict[str, str]]
) -> dict[str, str]:
    """
    Computes the effective tags of a resource: the default tags of the provider, overlaid with the
    tags of the resource itself.
    """
    return {**(default_tags or {}), **(tags or {})}


def to_tag_list(
    tags: Optional[dict[str, str]], key_field: str = "Key", value_field: str = "Value"
) -> TagList:
    if not tags:
        return []
    return [{key_field: key, value_field: value} for key, value in sorted(tags.items())]


def from_tag_list(
    tag_list: Optional[TagList], key_field: str = "Key", value_field: str = "Value"
) -> dict[str, str]:
    if not tag_list:
        return {}
    return {tag[key_field]: tag[value_field] for tag in tag_list}


def diff_tags(
    old_tags: Optional[dict[str, str]], new_tags: Optional[dict[str, str]]
) -> tuple[dict[str, str], list[str]]:
    """
    Compares two tag maps.

    :return: a tuple of the tags to add or change, and the tag keys to remove
    """
    old_tags = old_tags or {}
    new_tags = new_tags or {}
    to_set = {key: value for key, value in new_tags.items() if old_tags.get(key) != value}
    to_remove = sorted(key for key in old_tags if key not in new_tags)
    return to_set, to_remove


def list_tags(client, arn: str) -> dict[str, str]:
    response = client.list_tags_for_resource(ResourceArn=arn)
    return from_tag_list(response.get("Tags"))


def update_tags(
    client, arn: str, old_tags: Optional[dict[str, str]], new_tags: Optional[dict[str, str]]
) -> None:
    """Applies the difference between ``old_tags`` and ``new_tags`` to the resource with the given ARN."""
    to_set, to_remove = diff_tags(old_tags, new_tags)

    if to_remove:
        LOG.debug("Removing tags %s from %s", to_remove, arn)
        client.untag_resource(ResourceArn=arn, TagKeys=to_remove)

    if to_set:
        LOG.debug("Setting tags %s on %s", list(to_set), arn)
        client.tag_resource(ResourceArn=arn, Tags=to_tag_list(to_set))


def ignore_default_tags(
    tags_all: Optional[dict[str, str]], default_tags: Optional[dict[str, str]]
) -> dict[str, str]:
    """
    Computes the configured tags of a resource from its effective tags, by leaving out the default
    tags of the provider which were applied unchanged.
    """
    default_tags = default_tags or {}
    return {
        key: value
        for key, value in (tags_all or {}).items()
        if key not in default_tags or default_tags[key] != value
    }
