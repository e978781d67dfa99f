"""Keep the mirror under its release count limit."""

import logging

from relmirror.core.errors import ConfigError, NetworkError, RegistryError
from relmirror.core.registry import RegistryClient, tag_names
from relmirror.models.release import Release


logger = logging.getLogger(__name__)


def releases_to_prune(releases: list[Release], retain: int) -> list[Release]:
    """Releases beyond the newest ``retain``, smallest id first."""
    if retain < 1:
        raise ConfigError("retain_count must be greater than 0.")

    newest_first = sorted(releases, key=lambda r: r.id, reverse=True)
    return sorted(newest_first[retain:], key=lambda r: r.id)


def prune_releases(
    registry: RegistryClient,
    releases: list[Release],
    retain: int,
    continue_on_error: bool = False,
    failures: list | None = None,
) -> list[Release]:
    """Delete the oldest mirror releases so that at most ``retain`` remain.

    Returns the releases that were deleted. A failed deletion stops pruning
    unless ``continue_on_error`` is set, in which case it is logged, appended
    to ``failures`` as ``(tag, message)`` and the rest are still attempted.
    """
    doomed = releases_to_prune(releases, retain)
    if not doomed:
        logger.info("%s releases: %d, nothing to prune", registry.name, len(releases))
        return []

    logger.info(
        "%s releases: %d, pruning %d: %s",
        registry.name,
        len(releases),
        len(doomed),
        tag_names(doomed),
    )

    deleted = []
    for release in doomed:
        try:
            registry.delete_release(release.id)
        except (RegistryError, NetworkError) as e:
            if not continue_on_error:
                raise
            logger.error("Failed to delete release %s: %s", release.tag_name, e)
            if failures is not None:
                failures.append((release.tag_name, str(e)))
            continue
        logger.info("Deleted release %s", release.tag_name)
        deleted.append(release)

    return deleted
