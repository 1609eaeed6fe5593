"""
Test Cooperative Termination
============================
"""

import threading
import time

from terminator import AttemptTerminator, BasicTerminator, SignalTerminator


def test_unarmed_terminator_never_kills():
    terminator = BasicTerminator()
    assert not terminator.is_kill()
    assert terminator.timeout_at() is None
    assert terminator.remaining() is None


def test_deadline_passes():
    terminator = BasicTerminator()
    terminator.new_timeout(10.0)
    assert not terminator.is_kill()
    assert terminator.kill_reason() is None

    terminator.new_timeout(0.01)
    time.sleep(0.03)
    assert terminator.is_kill()
    assert terminator.kill_reason() == 'timeout'


def test_new_timeout_replaces_deadline():
    terminator = BasicTerminator()
    terminator.new_timeout(0.0)
    assert terminator.is_kill()

    terminator.new_timeout(10.0)
    assert not terminator.is_kill()
    assert 9.0 < terminator.remaining() <= 10.0


def test_new_timeout_clears_cancel_flag():
    terminator = SignalTerminator()
    terminator.new_timeout(10.0)
    terminator.cancel()
    assert terminator.is_kill()
    assert terminator.kill_reason() == 'cancelled'

    terminator.new_timeout(10.0)
    assert not terminator.is_kill()
    assert terminator.kill_reason() is None


def test_shared_cancel_flag_keeps_own_deadlines():
    event = threading.Event()
    first = SignalTerminator(event)
    second = SignalTerminator(event)
    first.new_timeout(0.0)
    second.new_timeout(10.0)

    assert first.is_kill() and not second.is_kill()
    event.set()
    assert second.is_kill()


def test_attempt_terminator_follows_parent():
    parent = SignalTerminator()
    parent.new_timeout(10.0)
    attempt = AttemptTerminator(parent, 5.0)
    assert not attempt.is_kill()
    assert attempt.timeout_at() < parent.timeout_at()

    parent.cancel()
    assert attempt.is_kill()
    assert attempt.kill_reason() == 'cancelled'


def test_attempt_terminator_own_deadline():
    parent = BasicTerminator()
    parent.new_timeout(10.0)
    attempt = AttemptTerminator(parent, 0.0)
    assert attempt.is_kill()
    assert not parent.is_kill()
