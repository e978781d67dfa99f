"""Reconcile origin releases onto the mirror, one release at a time.

Each origin release walks a small state machine::

    ABSENT ------------> CREATED ---+
    PRESENT_CHANGED ---> UPDATED ---+--> ASSETS_DIFFED --> SYNCED
    PRESENT_UNCHANGED --------------+         |              ^
                                              v              |
                                         DOWNLOADING --> UPLOADING

Registry errors abort the run unless ``continue_on_error`` is set. A failed
asset transfer never aborts: it is logged, recorded in the report and the
next asset is processed.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
import logging

from relmirror.core.config import MirrorConfig
from relmirror.core.diff import missing_assets
from relmirror.core.errors import NetworkError, RegistryError, TransferError
from relmirror.core.registry import RegistryClient, tag_names
from relmirror.core.retention import prune_releases
from relmirror.core.transfer import TransferEngine
from relmirror.core.version import max_tag, newer_than
from relmirror.models.release import Asset, Release


logger = logging.getLogger(__name__)


class ReleaseState(Enum):
    ABSENT = "absent"
    PRESENT_UNCHANGED = "present-unchanged"
    PRESENT_CHANGED = "present-changed"
    CREATED = "created"
    UPDATED = "updated"
    ASSETS_DIFFED = "assets-diffed"
    DOWNLOADING = "downloading"
    UPLOADING = "uploading"
    SYNCED = "synced"


# States whose next step is comparing assets
DIFF_ENTRY_STATES = (
    ReleaseState.CREATED,
    ReleaseState.UPDATED,
    ReleaseState.PRESENT_UNCHANGED,
)


def next_state(state: ReleaseState, missing: list[Asset] | None = None) -> ReleaseState:
    """Transition function of the per-release state machine.

    ``missing`` is only consulted when leaving ASSETS_DIFFED.
    """
    if state is ReleaseState.ABSENT:
        return ReleaseState.CREATED
    if state is ReleaseState.PRESENT_CHANGED:
        return ReleaseState.UPDATED
    if state in DIFF_ENTRY_STATES:
        return ReleaseState.ASSETS_DIFFED
    if state is ReleaseState.ASSETS_DIFFED:
        return ReleaseState.DOWNLOADING if missing else ReleaseState.SYNCED
    if state is ReleaseState.DOWNLOADING:
        return ReleaseState.UPLOADING
    if state is ReleaseState.UPLOADING:
        return ReleaseState.SYNCED
    raise ValueError(f"No transition out of {state.value}")


def needs_update(desired: Release, mirror: Release) -> bool:
    """Whether the mirror's metadata differs from what it should be.

    target_commitish is left out: the registries report branch names and
    commit hashes inconsistently for the same release.
    """
    return (
        desired.name != mirror.name
        or desired.body != mirror.body
        or desired.prerelease != mirror.prerelease
    )


def initial_state(desired: Release, mirror: Release | None) -> ReleaseState:
    if mirror is None:
        return ReleaseState.ABSENT
    if needs_update(desired, mirror):
        return ReleaseState.PRESENT_CHANGED
    return ReleaseState.PRESENT_UNCHANGED


@dataclass
class Failure:
    tag: str
    message: str
    asset: str | None = None


@dataclass
class SyncReport:
    """What a sync pass did."""

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    # Assets are recorded as "<tag>/<name>"
    downloaded: list[str] = field(default_factory=list)
    reused: list[str] = field(default_factory=list)
    uploaded: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.uploaded or self.deleted)


@dataclass
class PlannedAction:
    tag: str
    state: ReleaseState
    missing: list[str] = field(default_factory=list)


@dataclass
class Plan:
    actions: list[PlannedAction] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    prune: list[str] = field(default_factory=list)


class Planner:
    """Drives a full sync pass from origin to mirror."""

    def __init__(
        self,
        config: MirrorConfig,
        origin: RegistryClient,
        mirror: RegistryClient,
        transfer: TransferEngine,
    ):
        self.config = config
        self.origin = origin
        self.mirror = mirror
        self.transfer = transfer

    def desired_release(self, origin: Release) -> Release:
        """The metadata the mirror copy of ``origin`` should carry.

        The mirror rejects empty bodies, so the tag stands in for a missing
        body (and for a missing name).
        """
        body = origin.body if origin.body.strip() else origin.tag_name
        if self.config.body_url_replace:
            body = self.transfer.rewrite_urls(body)
        return replace(origin, name=origin.name or origin.tag_name, body=body)

    def fetch_origin(self) -> list[Release]:
        releases = self.origin.list_releases(page_size=self.config.fetch_count, page=1)
        logger.info(
            "%s: fetched latest %d releases: %s",
            self.origin.name,
            len(releases),
            tag_names(releases),
        )
        return releases

    def fetch_mirror(self) -> list[Release]:
        releases = self.mirror.iter_releases()
        logger.info(
            "%s: fetched %d releases: %s",
            self.mirror.name,
            len(releases),
            tag_names(releases),
        )
        return releases

    def select(
        self,
        origin: list[Release],
        mirror: list[Release],
    ) -> tuple[list[Release], list[Release]]:
        """Split origin releases into (to sync, skipped), oldest first."""
        ordered = sorted(origin, key=lambda r: r.id)
        if not self.config.skip_not_newer:
            return ordered, []

        ceiling = max_tag(r.tag_name for r in mirror)
        selected, skipped = [], []
        for release in ordered:
            if newer_than(release.tag_name, ceiling):
                selected.append(release)
            else:
                skipped.append(release)
        if skipped:
            logger.info(
                "Not newer than mirror's %s, skipping: %s", ceiling, tag_names(skipped)
            )
        return selected, skipped

    def plan(self) -> Plan:
        """Work out what sync() would do without writing anything."""
        self.config.validate()
        origin = self.fetch_origin()
        mirror = self.fetch_mirror()
        by_tag = {r.tag_name: r for r in mirror}
        selected, skipped = self.select(origin, mirror)

        plan = Plan(skipped=[r.tag_name for r in skipped])
        new_count = 0
        for release in selected:
            existing = by_tag.get(release.tag_name)
            state = initial_state(self.desired_release(release), existing)
            if state is ReleaseState.ABSENT:
                new_count += 1
            missing = missing_assets(release, existing)
            names = [a.name for a in missing]
            plan.actions.append(PlannedAction(release.tag_name, state, names))

        # New releases get ids above every existing one, so only existing ones are pruned
        overflow = len(mirror) + new_count - self.config.retain_count
        if overflow > 0:
            oldest = sorted(mirror, key=lambda r: r.id)[:overflow]
            plan.prune = [r.tag_name for r in oldest]
        return plan

    def sync(self) -> SyncReport:
        """Run a full pass: reconcile every selected release, then prune."""
        self.config.validate()
        report = SyncReport()

        origin = self.fetch_origin()
        mirror = self.fetch_mirror()
        by_tag = {r.tag_name: r for r in mirror}

        selected, skipped = self.select(origin, mirror)
        report.skipped.extend(r.tag_name for r in skipped)

        for release in selected:
            try:
                self.reconcile(release, by_tag.get(release.tag_name), report)
            except (RegistryError, NetworkError) as e:
                if not self.config.continue_on_error:
                    raise
                logger.error("Failed to sync release %s: %s", release.tag_name, e)
                report.failures.append(Failure(release.tag_name, str(e)))

        # The pass may have created releases, so look again before pruning
        current = self.fetch_mirror()
        prune_failures: list = []
        deleted = prune_releases(
            self.mirror,
            current,
            self.config.retain_count,
            continue_on_error=self.config.continue_on_error,
            failures=prune_failures,
        )
        report.deleted.extend(r.tag_name for r in deleted)
        report.failures.extend(Failure(tag, message) for tag, message in prune_failures)
        return report

    def reconcile(
        self,
        origin: Release,
        existing: Release | None,
        report: SyncReport,
    ) -> ReleaseState:
        """Bring one mirror release in line with ``origin``."""
        desired = self.desired_release(origin)
        state = initial_state(desired, existing)
        current = existing
        missing: list[Asset] = []
        staged: list[Path] = []

        while state is not ReleaseState.SYNCED:
            if state is ReleaseState.ABSENT:
                current = self.mirror.create_release(desired)
                logger.info("Created release %s", origin.tag_name)
                report.created.append(origin.tag_name)

            elif state is ReleaseState.PRESENT_CHANGED:
                current = replace(
                    existing,
                    name=desired.name,
                    body=desired.body,
                    prerelease=desired.prerelease,
                )
                self.mirror.update_release(existing.id, current)
                logger.info("Updated release %s", origin.tag_name)
                report.updated.append(origin.tag_name)

            elif state in DIFF_ENTRY_STATES:
                if state is ReleaseState.PRESENT_UNCHANGED:
                    logger.info("Release %s metadata already matches", origin.tag_name)
                    report.unchanged.append(origin.tag_name)
                missing = missing_assets(origin, current)

            elif state is ReleaseState.ASSETS_DIFFED:
                if missing:
                    logger.info(
                        "Release %s is missing %d asset(s): %s",
                        origin.tag_name,
                        len(missing),
                        ", ".join(a.name for a in missing),
                    )
                else:
                    logger.info("Release %s assets already match", origin.tag_name)

            elif state is ReleaseState.DOWNLOADING:
                staged = self._download(origin, missing, report)

            elif state is ReleaseState.UPLOADING:
                self._upload(origin, current, staged, report)

            state = next_state(state, missing)

        return state

    def _download(
        self,
        origin: Release,
        assets: list[Asset],
        report: SyncReport,
    ) -> list[Path]:
        staged = []
        for asset in assets:
            try:
                path, downloaded = self.transfer.fetch(origin, asset)
            except TransferError as e:
                logger.error("Skipping asset %s of %s: %s", asset.name, origin.tag_name, e)
                report.failures.append(Failure(origin.tag_name, str(e), asset.name))
                continue
            target = report.downloaded if downloaded else report.reused
            target.append(f"{origin.tag_name}/{asset.name}")
            staged.append(path)
        return staged

    def _upload(
        self,
        origin: Release,
        target: Release,
        staged: list[Path],
        report: SyncReport,
    ) -> None:
        url = self.mirror.attach_url(target.id)
        for path in staged:
            try:
                self.transfer.upload(url, self.mirror.token, path)
            except TransferError as e:
                logger.error("Skipping upload of %s to %s: %s", path.name, origin.tag_name, e)
                report.failures.append(Failure(origin.tag_name, str(e), path.name))
                continue
            report.uploaded.append(f"{origin.tag_name}/{path.name}")
            self.transfer.discard(path)
