"""Tests for the restore token guard"""
from vaultdesk.domain.enums import TransitionOrigin
from vaultdesk.engine.restore_guard import RestoreGuard


def test_mapping_allowed_without_token(clock):
    guard = RestoreGuard(timeout_seconds=5, clock=clock)
    assert guard.allows_mapping(TransitionOrigin.RESTORE) is True
    assert guard.allows_mapping(TransitionOrigin.USER) is True


def test_restore_mapping_dropped_while_token_active(clock):
    guard = RestoreGuard(timeout_seconds=5, clock=clock)
    token = guard.begin()

    assert guard.allows_mapping(TransitionOrigin.RESTORE) is False
    assert guard.complete(token) is True
    assert guard.allows_mapping(TransitionOrigin.RESTORE) is True


def test_user_transition_supersedes_token(clock):
    guard = RestoreGuard(timeout_seconds=5, clock=clock)
    token = guard.begin()

    assert guard.allows_mapping(TransitionOrigin.USER) is True
    assert guard.is_active() is False
    assert guard.complete(token) is False


def test_token_expires(clock):
    guard = RestoreGuard(timeout_seconds=5, clock=clock)
    guard.begin()

    clock.advance(4)
    assert guard.is_active() is True
    clock.advance(1)
    assert guard.is_active() is False
    assert guard.allows_mapping(TransitionOrigin.RESTORE) is True


def test_new_token_replaces_old(clock):
    guard = RestoreGuard(timeout_seconds=5, clock=clock)
    first = guard.begin()
    second = guard.begin()

    assert guard.complete(first) is False
    assert guard.is_active() is True
    assert guard.complete(second) is True
