# test_basic.py
# Minimal checks that the command-line entry point runs.

import json

import pytest

import sync_activities


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for key in ('STRAVA_CLIENT_ID', 'STRAVA_CLIENT_SECRET', 'STRAVA_REFRESH_TOKEN',
                'STRAVA_ACCESS_TOKEN', 'STRAVA_EXPIRES_AT', 'LAST_ACTIVITY_ID',
                'STRAVA_SYNC_STATE', 'CALENDAR_BACKEND', 'CALENDAR_DIR',
                'STRAVA_CALENDAR_NAME', 'DEFAULT_CALENDAR'):
        monkeypatch.delenv(key, raising=False)
    return tmp_path


def test_reset_cursor(workdir):
    assert sync_activities.main(['reset-cursor', '--to', '12']) == 0
    state = json.loads((workdir / '.strava-sync.json').read_text())
    assert state['LAST_ACTIVITY_ID'] == '12'


def test_status_hides_secrets(workdir, monkeypatch, capsys):
    monkeypatch.setenv('STRAVA_CLIENT_SECRET', 'super-secret')
    assert sync_activities.main(['status']) == 0
    out = capsys.readouterr().out
    assert 'STRAVA_CLIENT_SECRET present: True' in out
    assert 'STRAVA_CLIENT_ID present: False' in out
    assert 'super-secret' not in out


def test_sync_without_secrets_fails(workdir, capsys):
    assert sync_activities.main([]) == 1
    assert 'Missing required settings' in capsys.readouterr().out


def test_check_calendar_creates_subscribed_calendar(workdir, capsys):
    assert sync_activities.main(['check-calendar']) == 0
    out = capsys.readouterr().out
    assert 'Events will be created in: Strava' in out
    assert (workdir / 'calendars' / 'Strava.ics').exists()


def test_check_calendar_honours_named_default(workdir, monkeypatch, capsys):
    monkeypatch.setenv('DEFAULT_CALENDAR', 'Personal')
    assert sync_activities.main(['check-calendar']) == 0
    assert 'Events will be created in: Personal' in capsys.readouterr().out
    assert not (workdir / 'calendars' / 'Strava.ics').exists()
