"""Tests for the unit of work and the message bus."""

from __future__ import annotations

from dataclasses import dataclass
from unittest import mock

from django.test import SimpleTestCase, TestCase

from shared.application.message_bus import MessageBus, message_bus
from shared.application.uow import DjangoUnitOfWork, InMemoryUnitOfWork
from shared.domain.base import Aggregate, DomainEvent


@dataclass
class Pinged(DomainEvent):
    name: str


@dataclass(eq=False)
class Counter(Aggregate):
    label: str = "counter"

    def ping(self) -> None:
        self.add_event(Pinged(aggregate_id=self.id, name=self.label))


class DjangoUnitOfWorkTests(TestCase):

    def test_events_are_published_after_commit(self) -> None:
        counter = Counter()
        counter.ping()

        with mock.patch.object(message_bus, "publish_events") as publish:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                with DjangoUnitOfWork() as uow:
                    uow.collect_events(counter)
                    publish.assert_not_called()

        self.assertEqual(len(callbacks), 1)
        published = publish.call_args.args[0]
        self.assertEqual([e.name for e in published], ["counter"])
        self.assertEqual(counter.events, [])

    def test_rollback_discards_events(self) -> None:
        counter = Counter()
        counter.ping()

        with mock.patch.object(message_bus, "publish_events") as publish:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                with self.assertRaises(RuntimeError):
                    with DjangoUnitOfWork() as uow:
                        uow.collect_events(counter)
                        raise RuntimeError("boom")

        self.assertEqual(callbacks, [])
        publish.assert_not_called()


class InMemoryUnitOfWorkTests(SimpleTestCase):

    def test_compensations_run_in_reverse_on_rollback(self) -> None:
        undone = []

        with self.assertRaises(ValueError):
            with InMemoryUnitOfWork() as uow:
                uow.add_compensation(lambda: undone.append("first"))
                uow.add_compensation(lambda: undone.append("second"))
                raise ValueError("insert failed")

        self.assertEqual(undone, ["second", "first"])

    def test_compensations_are_dropped_on_commit(self) -> None:
        undone = []

        with InMemoryUnitOfWork() as uow:
            uow.add_compensation(lambda: undone.append("first"))
        uow.rollback()

        self.assertEqual(undone, [])

    def test_publish_failure_does_not_propagate(self) -> None:
        counter = Counter()
        counter.ping()

        with mock.patch.object(message_bus, "publish_events", side_effect=RuntimeError("broker down")):
            with self.assertLogs("shared.application.uow", "ERROR"):
                with InMemoryUnitOfWork() as uow:
                    uow.collect_events(counter)


class MessageBusTests(SimpleTestCase):

    def setUp(self) -> None:
        self.bus = MessageBus()

    def test_command_returns_handler_result(self) -> None:
        self.bus.register_command_handler(str, lambda command: command.upper())

        self.assertTrue(self.bus.has_command_handler(str))
        self.assertEqual(self.bus.handle_command("ok"), "OK")

    def test_one_handler_per_command(self) -> None:
        self.bus.register_command_handler(int, lambda command: command)

        with self.assertRaises(ValueError):
            self.bus.register_command_handler(int, lambda command: command)
        with self.assertRaises(ValueError):
            self.bus.handle_command(1.5)

    def test_failing_event_handler_does_not_stop_others(self) -> None:
        received = []

        def broken(event):
            raise RuntimeError("handler bug")

        self.bus.register_event_handler(Pinged, broken)
        self.bus.register_event_handler(Pinged, received.append)
        self.bus.register_event_handler(Pinged, received.append)

        with self.assertLogs("shared.application.message_bus", "ERROR"):
            self.bus.publish_events([Pinged(name="a")])

        self.assertEqual([event.name for event in received], ["a"])
