"""
Wire settings, state, token manager and sync engine together for one pass,
and run passes on a timer for hosts without cron.
"""

import functools
import logging
import time

import requests
import schedule

from .calendars import IcsCalendarProvider
from .config import PropertyStore, require_credentials
from .errors import StravaCalendarError
from .strava import StravaClient
from .sync import SyncEngine
from .tokens import TokenManager

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def build_store(settings):
    return PropertyStore(settings.state_path)


def build_provider(settings, interactive=True):
    if settings.calendar_backend == 'google':
        from .gcal import GoogleCalendarProvider, build_service
        service = build_service(settings.google_client_secrets, settings.google_token_file,
                                interactive=interactive)
        return GoogleCalendarProvider(service)
    # Without a named default, the default file is the one the sync targets
    default_name = settings.default_calendar or settings.calendar_name
    return IcsCalendarProvider(settings.calendar_dir, default_name=default_name, tz=settings.tz)


def build_engine(settings, store, provider, session=None):
    return SyncEngine(
        store,
        provider,
        calendar_name=settings.calendar_name,
        per_page=settings.per_page,
        max_pages=settings.max_pages,
        recovery_limit=settings.recovery_limit,
        create_delay=settings.create_delay,
        client_factory=functools.partial(StravaClient, session=session),
    )


def get_access_token(store, token_manager=None, session=None):
    # Fail before any network call when a secret is missing
    require_credentials(store)
    token_manager = token_manager or TokenManager(store, session=session)
    return token_manager.ensure_valid_access_token()


def run_sync(settings, store, provider, token_manager=None, engine=None):
    """One incremental pass. Returns the number of events created."""
    with requests.Session() as session:
        access_token = get_access_token(store, token_manager, session=session)
        engine = engine or build_engine(settings, store, provider, session=session)
        created = engine.sync_new_activities(access_token)
    logger.info("Sync completed successfully")
    return created


def run_recovery(settings, store, provider, since=None, days=None,
                 token_manager=None, engine=None, clock=time.time):
    """Recovery pass over the last ``days`` days (or since an explicit timestamp)."""
    if since is None:
        days = settings.recover_days if days is None else days
        since = int(clock()) - days * SECONDS_PER_DAY
    with requests.Session() as session:
        access_token = get_access_token(store, token_manager, session=session)
        engine = engine or build_engine(settings, store, provider, session=session)
        return engine.recover_window(access_token, since)


def run_single(settings, store, provider, activity_id, token_manager=None, engine=None):
    """Sync one activity by id. True when an event was created."""
    with requests.Session() as session:
        access_token = get_access_token(store, token_manager, session=session)
        engine = engine or build_engine(settings, store, provider, session=session)
        return engine.sync_activity(access_token, activity_id)


def _guarded(name, job):
    def run():
        try:
            job()
        except StravaCalendarError as e:
            logger.error("%s failed: %s", name, e)
        except Exception:
            logger.exception("%s failed unexpectedly", name)
    return run


def watch(settings, store, provider, scheduler=None, sleep=time.sleep, iterations=None):
    """Poll every ``poll_minutes`` and run a daily recovery at ``backup_time``.

    ``iterations`` bounds the loop (tests); None runs until interrupted.
    """
    scheduler = scheduler or schedule.Scheduler()
    sync_job = _guarded("Sync", lambda: run_sync(settings, store, provider))
    backup_job = _guarded("Backup recovery", lambda: run_recovery(settings, store, provider))

    scheduler.every(settings.poll_minutes).minutes.do(sync_job)
    scheduler.every().day.at(settings.backup_time).do(backup_job)
    logger.info("Polling every %s minutes, daily recovery of the last %s days at %s",
                settings.poll_minutes, settings.recover_days, settings.backup_time)

    sync_job()
    count = 0
    while iterations is None or count < iterations:
        scheduler.run_pending()
        sleep(30)
        count += 1
