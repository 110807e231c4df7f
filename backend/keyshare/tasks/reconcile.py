"""Periodic check that the upload table and the upload directory agree.

Orphan directories (no row references the namespace) typically come from a
delete whose directory removal failed. Dangling rows (no file on disk) come
from interrupted renames or external tampering. Orphans past the grace period
can be removed; dangling rows are only reported.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field

from keyshare.core.config import Settings
from keyshare.core.errors import KeyshareError, NotFound
from keyshare.monitoring.setup import report_reconcile
from keyshare.services.metadata_store import MetadataStore
from keyshare.services.object_store import ObjectStore
from keyshare.utils.paths import split_object_path

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    orphans: list = field(default_factory=list)
    dangling: list = field(default_factory=list)
    removed: list = field(default_factory=list)


async def reconcile_once(
    settings: Settings,
    metadata: MetadataStore,
    objects: ObjectStore,
    now: float | None = None,
) -> ReconcileReport:
    now = time.time() if now is None else now
    report = ReconcileReport()

    paths = await metadata.all_paths()
    namespaces = await objects.list_namespaces()

    referenced = set()
    for path in paths:
        try:
            namespace, filename = split_object_path(path)
        except KeyshareError:
            logger.warning("Upload row has malformed path %r", path)
            report.dangling.append(path)
            continue
        referenced.add(namespace)
        if namespace not in namespaces or not await objects.exists(namespace, filename):
            report.dangling.append(path)

    for namespace, mtime in sorted(namespaces.items()):
        if namespace in referenced:
            continue
        report.orphans.append(namespace)
        if settings.RECONCILE_REMOVE_ORPHANS and now - mtime >= settings.RECONCILE_GRACE_SECONDS:
            try:
                await objects.delete_namespace(namespace)
            except NotFound:
                continue
            except KeyshareError as e:
                logger.warning("Could not remove orphan namespace %s: %s", namespace, e)
                continue
            report.removed.append(namespace)

    return report


async def reconcile_loop(settings: Settings, session_factory, objects: ObjectStore):
    interval = settings.RECONCILE_INTERVAL_SECONDS
    logger.info("Reconcile task started: interval=%s remove_orphans=%s grace=%s",
                interval, settings.RECONCILE_REMOVE_ORPHANS, settings.RECONCILE_GRACE_SECONDS)

    while True:
        started = time.monotonic()
        try:
            async with session_factory() as db:
                report = await reconcile_once(settings, MetadataStore(db), objects)

            duration = time.monotonic() - started
            report_reconcile(len(report.orphans), len(report.dangling), len(report.removed), duration)
            for path in report.dangling:
                logger.warning("Upload %s has no file on disk", path)
            for namespace in report.orphans:
                logger.warning("Namespace %s has no upload row", namespace)
            logger.info("reconcile_summary orphans=%s dangling=%s removed=%s duration=%.3fs",
                        len(report.orphans), len(report.dangling), len(report.removed), duration)

            await asyncio.sleep(interval)

        except asyncio.CancelledError:
            logger.info("Reconcile task cancelled by shutdown")
            raise
        except Exception as e:
            logger.exception("Reconcile loop error: %s", e)
            await asyncio.sleep(min(60, interval))


async def start_reconcile_task(settings: Settings, session_factory, objects: ObjectStore):
    return await reconcile_loop(settings, session_factory, objects)
