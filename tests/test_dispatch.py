"""Tests for the serial progress dispatcher."""

from __future__ import annotations

import threading

import pytest

from cachesweep.core.dispatch import SerialDispatcher


def test_callbacks_run_in_order_on_one_thread():
    seen = []
    threads = set()

    def record(value):
        seen.append(value)
        threads.add(threading.current_thread().name)

    with SerialDispatcher(name="observer") as dispatcher:
        wrapped = dispatcher.wrap(record)
        for i in range(50):
            wrapped(i)

    assert seen == list(range(50))
    assert threads == {"observer"}


def test_submissions_from_many_threads_are_all_delivered():
    seen = []

    with SerialDispatcher() as dispatcher:
        wrapped = dispatcher.wrap(seen.append)
        workers = [threading.Thread(target=lambda: [wrapped(1) for _ in range(100)]) for _ in range(4)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

    assert len(seen) == 400


def test_wrap_none():
    assert SerialDispatcher().wrap(None) is None


def test_failing_callback_does_not_stop_dispatch():
    seen = []

    def boom(value):
        raise ValueError(value)

    with SerialDispatcher() as dispatcher:
        dispatcher.submit(boom, 1)
        dispatcher.submit(seen.append, 2)

    assert seen == [2]


def test_submit_after_close():
    dispatcher = SerialDispatcher()
    dispatcher.start()
    dispatcher.close()
    with pytest.raises(RuntimeError):
        dispatcher.submit(print, "late")


def test_close_without_start():
    dispatcher = SerialDispatcher()
    dispatcher.close()
    dispatcher.close()
