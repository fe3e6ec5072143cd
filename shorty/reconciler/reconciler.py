"""Background consistency sweep between the key store and the object store

A reconciliation pass runs three phases:

    Phase A: scan every live short URL and derive the object it references,
             building the set of live object names.
    Phase B: scan every object existence cache entry. Entries of live short
             URLs are refreshed when stale. Entries of dead short URLs are
             removed, and their object is deleted unless it is in the live set.
    Phase C: list the bucket and delete every object missing from the live set
             (objects younger than the grace window are skipped), together with
             any cache entries still pointing at it.

Objects are deleted only here, and only when no live short URL seen by the
pass references them.

Classes:
    Reconciler:
        Runs single, non-overlapping reconciliation passes.

Example:
    >>> reconciler = Reconciler(short_url_dao, object_dao, orphan_grace=600)
    >>> report = reconciler.run()
    >>> report.deleted_objects
    ['orphan.png']
"""

import time
import logging
import threading
from datetime import datetime, timedelta, UTC

from shorty.constants import Timeout, DEFAULT_ORPHAN_GRACE_SECONDS
from shorty.models import ReconcileReport, StoredObject
from shorty.dao.base import ShortURLBaseDAO, ObjectBaseDAO
from shorty.dao.exceptions import DAOError, ShortURLNotFoundError, MalformedDataError


logger = logging.getLogger(__name__)


class PassDeadlineExceeded(Exception):
    """Raised inside a pass once its overall deadline has passed."""


class Reconciler:
    """Reconcile short URLs, their object existence cache and the bucket

    Attributes:
        short_urls (ShortURLBaseDAO):
            Key store with the scanning primitives.
        objects (ObjectBaseDAO):
            Object store the orphans are deleted from.
        pass_timeout (float):
            Overall deadline of a single pass in seconds.
        orphan_grace (int):
            Objects modified less than this many seconds ago are never orphans.

    NOTE: a pass is consistent with the live set built in Phase A, not with
          the state at the time of each delete. An object uploaded after Phase A
          started is protected by the grace window in Phase C.
    """

    def __init__(
        self,
        short_urls: ShortURLBaseDAO,
        objects: ObjectBaseDAO,
        pass_timeout: float = Timeout.RECONCILE_PASS,
        orphan_grace: int = DEFAULT_ORPHAN_GRACE_SECONDS,
    ):
        self.short_urls = short_urls
        self.objects = objects
        self.pass_timeout = pass_timeout
        self.orphan_grace = orphan_grace
        self._lock = threading.Lock()

    def run(self) -> ReconcileReport | None:
        """Run one reconciliation pass

        Passes never overlap: a call made while another pass is still running
        returns None immediately.

        Returns:
            ReconcileReport | None:
                Outcome of the pass, or None if another pass was running.
        """
        if not self._lock.acquire(blocking=False):
            logger.info('Reconciliation pass already running, skipping.')
            return None

        try:
            return self._run_pass()
        finally:
            self._lock.release()

    def _run_pass(self) -> ReconcileReport:
        report = ReconcileReport()
        deadline = time.monotonic() + self.pass_timeout
        logger.debug('Starting reconciliation pass.', extra={'passTimeout': self.pass_timeout})

        try:
            live_shortcodes = self._collect_live_references(report, deadline)
        except (PassDeadlineExceeded, DAOError):
            # An incomplete live set must never be used to delete objects
            logger.exception('Reconciliation pass aborted while scanning short URLs.', extra={'phase': 'A'})
            report.errors += 1
            report.aborted = True
            return report

        self._guarded('B', report, self._reap_cache_entries, report, deadline, live_shortcodes)
        if not report.aborted:
            self._guarded('C', report, self._reap_orphans, report, deadline)

        logger.info(
            'Reconciliation pass finished.',
            extra={
                'liveObjects': len(report.live_objects),
                'deletedObjects': len(report.deleted_objects),
                'removedCacheEntries': len(report.removed_cache_entries),
                'refreshedCacheEntries': len(report.refreshed_cache_entries),
                'skippedRecentObjects': len(report.skipped_recent_objects),
                'errors': report.errors,
                'aborted': report.aborted,
            },
        )
        return report

    @staticmethod
    def _guarded(phase: str, report: ReconcileReport, func, *args) -> None:
        """Run a phase; an expired deadline or a failed listing ends only that phase"""
        try:
            func(*args)
        except PassDeadlineExceeded:
            logger.warning('Reconciliation pass deadline exceeded, skipping remaining items.', extra={'phase': phase})
            report.aborted = True
        except DAOError:
            logger.exception('Reconciliation phase failed while listing.', extra={'phase': phase})
            report.errors += 1

    @staticmethod
    def _check_deadline(deadline: float) -> None:
        if time.monotonic() >= deadline:
            raise PassDeadlineExceeded()

    # -------------------------------------------------
    # Phase A: live references
    # -------------------------------------------------

    def _collect_live_references(self, report: ReconcileReport, deadline: float) -> dict[str, str]:
        """Build the live object set; returns shortcode -> derived object name"""
        live_shortcodes = {}
        for shortcode in self.short_urls.iter_shortcodes():
            self._check_deadline(deadline)
            try:
                short_url = self.short_urls.get(shortcode)
            except (ShortURLNotFoundError, MalformedDataError):
                continue  # expired since the scan, or not a short URL

            object_name = self.short_urls.object_name(short_url.target)
            live_shortcodes[shortcode] = object_name
            if object_name:
                report.live_objects.add(object_name)

        logger.debug('Collected live references.', extra={'phase': 'A', 'liveObjects': len(report.live_objects)})
        return live_shortcodes

    # -------------------------------------------------
    # Phase B: cache entries
    # -------------------------------------------------

    def _reap_cache_entries(self, report: ReconcileReport, deadline: float, live_shortcodes: dict[str, str]) -> None:
        for shortcode in self.short_urls.iter_cached_shortcodes():
            self._check_deadline(deadline)
            try:
                self._reconcile_cache_entry(shortcode, report, live_shortcodes)
            except DAOError:
                logger.exception('Failed to reconcile cache entry.', extra={'phase': 'B', 'shortcode': shortcode})
                report.errors += 1

    def _reconcile_cache_entry(self, shortcode: str, report: ReconcileReport, live_shortcodes: dict[str, str]) -> None:
        cached_object = self.short_urls.cached_object(shortcode)
        if cached_object is None:
            return  # expired since the scan

        try:
            short_url = self.short_urls.get(shortcode)
        except (ShortURLNotFoundError, MalformedDataError):
            short_url = None

        if short_url is not None:
            object_name = live_shortcodes.get(shortcode)
            if object_name is None:
                # Created after Phase A: protect its object for the rest of the pass
                object_name = self.short_urls.object_name(short_url.target)
                if object_name:
                    report.live_objects.add(object_name)
            if cached_object != object_name:
                self.short_urls.cache_object(shortcode, object_name)
                report.refreshed_cache_entries.append(shortcode)
                logger.debug('Refreshed stale cache entry.', extra={'phase': 'B', 'shortcode': shortcode})
            return

        if cached_object and cached_object not in report.live_objects:
            self._delete_object(cached_object, report, phase='B')
        self.short_urls.drop_cached_object(shortcode)
        report.removed_cache_entries.append(shortcode)

    # -------------------------------------------------
    # Phase C: orphans
    # -------------------------------------------------

    def _reap_orphans(self, report: ReconcileReport, deadline: float) -> None:
        grace_cutoff = datetime.now(UTC) - timedelta(seconds=self.orphan_grace)
        cache_index = None

        for stored_object in self.objects.list_objects():
            self._check_deadline(deadline)
            if stored_object.name in report.live_objects:
                continue
            if self._is_recent(stored_object, grace_cutoff):
                report.skipped_recent_objects.append(stored_object.name)
                continue

            try:
                self._delete_object(stored_object.name, report, phase='C')
                if cache_index is None:
                    cache_index = self._cache_index()
                for shortcode in cache_index.pop(stored_object.name, []):
                    self.short_urls.drop_cached_object(shortcode)
                    report.removed_cache_entries.append(shortcode)
            except DAOError:
                logger.exception('Failed to reap orphan object.', extra={'phase': 'C', 'objectName': stored_object.name})
                report.errors += 1

    @staticmethod
    def _is_recent(stored_object: StoredObject, grace_cutoff: datetime) -> bool:
        last_modified = stored_object.last_modified
        if last_modified is None:
            return False
        if last_modified.tzinfo is None:
            last_modified = last_modified.replace(tzinfo=UTC)
        return last_modified > grace_cutoff

    def _cache_index(self) -> dict[str, list[str]]:
        """Map cached object names to the shortcodes whose cache entry points at them"""
        index = {}
        for shortcode in self.short_urls.iter_cached_shortcodes():
            cached_object = self.short_urls.cached_object(shortcode)
            if cached_object:
                index.setdefault(cached_object, []).append(shortcode)
        return index

    def _delete_object(self, name: str, report: ReconcileReport, phase: str) -> None:
        self.objects.delete(name)
        report.deleted_objects.append(name)
        logger.info('Deleted unreferenced object.', extra={'phase': phase, 'objectName': name})
