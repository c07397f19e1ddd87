# test_runner.py
# One-shot passes and the polling loop.

import pytest

from conftest import FakeResponse, FakeSession, FakeStravaClient, make_activity
from strava_calendar import config, runner
from strava_calendar.config import PropertyStore, Settings
from strava_calendar.errors import AuthenticationError, ConfigurationError
from strava_calendar.sync import SyncEngine
from strava_calendar.tokens import TokenManager

NOW = 1_700_000_000


def token_manager(store, session):
    return TokenManager(store, session=session, clock=lambda: NOW)


def test_run_sync_refreshes_token_then_syncs(store, provider, strava_calendar):
    session = FakeSession([FakeResponse(200, {'access_token': 'a1', 'refresh_token': 'r1',
                                              'expires_at': NOW + 21600})])
    tokens_seen = []
    client = FakeStravaClient([make_activity(1), make_activity(2)])
    engine = SyncEngine(store, provider,
                        client_factory=lambda token: tokens_seen.append(token) or client)

    created = runner.run_sync(Settings(), store, provider,
                              token_manager=token_manager(store, session), engine=engine)

    assert created == 2
    assert tokens_seen == ['a1']
    assert store.get(config.REFRESH_TOKEN) == 'r1'


def test_run_sync_without_secrets_makes_no_calls(provider):
    store = PropertyStore(path=None, environ={})
    session = FakeSession([])

    with pytest.raises(ConfigurationError):
        runner.run_sync(Settings(), store, provider, token_manager=token_manager(store, session))
    assert session.calls == []


def test_auth_failure_stops_pass(store, provider, strava_calendar):
    session = FakeSession([FakeResponse(401, text='invalid_grant')])
    client = FakeStravaClient([make_activity(1)])
    engine = SyncEngine(store, provider, client_factory=lambda token: client)

    with pytest.raises(AuthenticationError):
        runner.run_sync(Settings(), store, provider,
                        token_manager=token_manager(store, session), engine=engine)
    assert client.requested_pages == []
    assert strava_calendar.events == []


def test_run_recovery_window_from_days(store, provider):
    store.update({config.ACCESS_TOKEN: 'a0', config.EXPIRES_AT: NOW + 3600})
    client = FakeStravaClient([make_activity(1)])
    engine = SyncEngine(store, provider, client_factory=lambda token: client, sleep=lambda s: None)

    recovered = runner.run_recovery(Settings(), store, provider, days=7,
                                    token_manager=token_manager(store, FakeSession([])),
                                    engine=engine, clock=lambda: NOW)

    assert recovered == 1
    assert client.after_calls == [(NOW - 7 * 86400, 100)]


def test_build_provider_ics(tmp_path):
    settings = Settings(calendar_dir=str(tmp_path), default_calendar='Personal')
    provider = runner.build_provider(settings)
    assert provider.get_default_calendar().name == 'Personal'


def test_build_provider_ics_defaults_to_sync_calendar(tmp_path):
    settings = Settings(calendar_dir=str(tmp_path), calendar_name='Training')
    provider = runner.build_provider(settings)

    assert provider.get_default_calendar().name == 'Training'
    assert (tmp_path / 'Training.ics').exists()


def test_engine_clients_share_session(store, provider):
    session = FakeSession([])
    engine = runner.build_engine(Settings(), store, provider, session=session)

    assert engine.client_factory('a1').session is session


def test_run_sync_uses_one_session_and_closes_it(monkeypatch, store, provider):
    session = FakeSession([
        FakeResponse(200, {'access_token': 'a1', 'refresh_token': 'r1', 'expires_at': 4_000_000_000}),
        FakeResponse(200, []),
    ])
    monkeypatch.setattr(runner.requests, 'Session', lambda: session)

    assert runner.run_sync(Settings(), store, provider) == 0

    assert [call[0] for call in session.calls] == ['POST', 'GET']
    assert session.closed


def test_run_single_closes_session(monkeypatch, store, provider, strava_calendar):
    store.update({config.ACCESS_TOKEN: 'a0', config.EXPIRES_AT: 4_000_000_000})
    session = FakeSession([FakeResponse(200, make_activity(77))])
    monkeypatch.setattr(runner.requests, 'Session', lambda: session)

    assert runner.run_single(Settings(), store, provider, 77) is True

    assert session.calls[0][1].endswith('/activities/77')
    assert len(strava_calendar.events) == 1
    assert session.closed


class RecordingScheduler:
    def __init__(self):
        self.jobs = []
        self.pending_runs = 0

    def every(self, interval=1):
        scheduler = self

        class Job:
            def __init__(self):
                self.interval = interval
                self.unit = None
                self.at_time = None

            @property
            def minutes(self):
                self.unit = 'minutes'
                return self

            @property
            def day(self):
                self.unit = 'day'
                return self

            def at(self, when):
                self.at_time = when
                return self

            def do(self, func):
                self.func = func
                scheduler.jobs.append(self)
                return self

        return Job()

    def run_pending(self):
        self.pending_runs += 1


def test_watch_schedules_poll_and_daily_recovery(monkeypatch, store, provider):
    calls = []
    monkeypatch.setattr(runner, 'run_sync', lambda *args, **kwargs: calls.append('sync'))
    monkeypatch.setattr(runner, 'run_recovery', lambda *args, **kwargs: calls.append('recover'))
    scheduler = RecordingScheduler()
    sleeps = []

    runner.watch(Settings(poll_minutes=15, backup_time='08:00'), store, provider,
                 scheduler=scheduler, sleep=sleeps.append, iterations=3)

    assert [(j.interval, j.unit, j.at_time) for j in scheduler.jobs] == [
        (15, 'minutes', None), (1, 'day', '08:00'),
    ]
    assert calls == ['sync']  # one pass right away
    assert scheduler.pending_runs == 3
    assert sleeps == [30, 30, 30]

    scheduler.jobs[1].func()
    assert calls == ['sync', 'recover']


def test_watch_jobs_survive_failures(monkeypatch, store, provider):
    def boom(*args, **kwargs):
        raise AuthenticationError("Failed to refresh Strava token: invalid_grant")

    monkeypatch.setattr(runner, 'run_sync', boom)
    scheduler = RecordingScheduler()

    runner.watch(Settings(), store, provider, scheduler=scheduler, sleep=lambda s: None, iterations=1)

    scheduler.jobs[0].func()
