"""Tests for the failed-attempt counter and lockout window"""

import datetime

import pytest

from tarotapi.services.login_guard import (
    LoginGuard,
    LoginOutcome,
    incorrect_credentials_message,
    just_locked_message,
    locked_message,
)
from conftest import START_TIME, FakeClock, FakeUser


@pytest.fixture
def guard_clock():
    return FakeClock()


@pytest.fixture
def guard(guard_clock):
    return LoginGuard(max_failed_attempts=5, lockout_minutes=15, clock=guard_clock)


@pytest.fixture
def user():
    return FakeUser(id=1, username="alice", password_hash="x")


def _apply(user, attempt):
    for key, value in attempt.updates.items():
        setattr(user, key, value)


class TestLoginGuard:
    def test_fresh_user_needs_no_check(self, guard, user):
        assert guard.check(user) is None
        assert not guard.is_locked(user)

    def test_failures_count_down_remaining_attempts(self, guard, user):
        remaining = []
        for _ in range(4):
            attempt = guard.record_failure(user)
            _apply(user, attempt)
            assert attempt.outcome == LoginOutcome.INCORRECT_CREDENTIALS
            remaining.append(attempt.remaining_attempts)
        assert remaining == [4, 3, 2, 1]
        assert user.failed_login_attempts == 4
        assert user.last_failed_login == START_TIME
        assert user.account_locked_until is None

    def test_fifth_failure_locks_account(self, guard, user):
        user.failed_login_attempts = 4
        attempt = guard.record_failure(user)
        _apply(user, attempt)

        assert attempt.outcome == LoginOutcome.ACCOUNT_JUST_LOCKED
        assert user.failed_login_attempts == 5
        assert user.account_locked_until == START_TIME + datetime.timedelta(
            minutes=15
        )
        assert guard.is_locked(user)

    def test_locked_user_reports_rounded_up_minutes(self, guard, guard_clock, user):
        user.failed_login_attempts = 5
        user.account_locked_until = START_TIME + datetime.timedelta(minutes=15)

        guard_clock.advance(minutes=10)
        attempt = guard.check(user)
        assert attempt.outcome == LoginOutcome.LOCKED_OUT
        assert attempt.minutes_remaining == 5

        guard_clock.advance(minutes=4, seconds=30)
        assert guard.check(user).minutes_remaining == 1

    def test_elapsed_lock_resets_counter(self, guard, guard_clock, user):
        user.failed_login_attempts = 5
        user.account_locked_until = START_TIME + datetime.timedelta(minutes=15)

        guard_clock.advance(minutes=16)
        attempt = guard.check(user)

        assert attempt.outcome == LoginOutcome.LOCK_EXPIRED
        assert attempt.updates == {
            "failed_login_attempts": 0,
            "account_locked_until": None,
        }
        _apply(user, attempt)

        # A wrong password now counts from zero again
        failure = guard.record_failure(user)
        assert failure.updates["failed_login_attempts"] == 1
        assert failure.remaining_attempts == 4

    def test_success_clears_all_lockout_fields(self, guard, user):
        user.failed_login_attempts = 3
        user.last_failed_login = START_TIME
        attempt = guard.record_success(user)
        assert attempt.outcome == LoginOutcome.SUCCESS
        _apply(user, attempt)

        assert user.failed_login_attempts == 0
        assert user.last_failed_login is None
        assert user.account_locked_until is None


class TestLoginMessages:
    def test_incorrect_credentials_message(self):
        assert (
            incorrect_credentials_message(3)
            == "Incorrect username or password. 3 attempts remaining."
        )
        assert (
            incorrect_credentials_message(1)
            == "Incorrect username or password. 1 attempt remaining."
        )

    def test_lock_messages(self):
        assert (
            just_locked_message(15)
            == "Too many failed attempts. Account locked for 15 minutes."
        )
        assert (
            locked_message(5) == "Account temporarily locked. Try again in 5 minutes."
        )
        assert locked_message(1) == "Account temporarily locked. Try again in 1 minute."
