from __future__ import annotations

import os
import tempfile
import threading
import time
import unittest

from sqlalchemy import func, select

from doorprize.config import DrawSettings
from doorprize.db.engine import get_sessionmaker, make_engine
from doorprize.models import Base, Winning
from doorprize.prize_draw import (
    Actor,
    Busy,
    Conflict,
    DrawWorkflow,
    EmptyPool,
    MemoryAuditSink,
)
from doorprize.workflows import add_prize, create_event, register_participant


class ConcurrentDrawTests(unittest.TestCase):
    """Several operators hammering the same database from separate threads."""

    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        url = f"sqlite:///{os.path.join(self._tmpdir.name, 'draws.db')}"
        self.engine = make_engine(url)
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)
        self.workflow = DrawWorkflow(
            self.Session,
            settings=DrawSettings(database_url=url),
            audit_sink=MemoryAuditSink(),
        )

    def tearDown(self) -> None:
        self.engine.dispose()
        self._tmpdir.cleanup()

    def _seed(self, participants: int, quantities: tuple[int, ...]):
        with self.Session.begin() as session:
            event = create_event(session, "Concurrency Night")
            for index in range(participants):
                register_participant(session, event, f"Guest {index}")
            prizes = [
                add_prize(session, event, f"Prize {index}", quantity=quantity)
                for index, quantity in enumerate(quantities)
            ]
            return event.id, [prize.id for prize in prizes]

    def _operator(self, name: str, event_id: int, prize_id: int, errors: list) -> None:
        actor = Actor(identity=name)
        try:
            for _ in range(2000):
                try:
                    preview = self.workflow.preview_draw(event_id, prize_id, actor)
                except Busy:
                    time.sleep(0.005)
                    continue
                except EmptyPool:
                    return
                try:
                    self.workflow.confirm_draw(
                        event_id, prize_id, preview.participant.id, actor
                    )
                except Conflict:
                    continue
            errors.append(AssertionError(f"{name} never saw the prize run out"))
        except Exception as exc:  # surfaced to the main thread below
            errors.append(exc)

    def _run(self, targets: list[tuple[int, int]]) -> None:
        errors: list[Exception] = []
        threads = [
            threading.Thread(
                target=self._operator, args=(f"operator-{index}", event_id, prize_id, errors)
            )
            for index, (event_id, prize_id) in enumerate(targets)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=120)
        self.assertEqual(errors, [])

    def test_quantity_is_never_exceeded(self) -> None:
        event_id, (prize_id,) = self._seed(participants=20, quantities=(5,))
        self._run([(event_id, prize_id)] * 6)

        with self.Session() as session:
            winners = session.scalars(
                select(Winning.participant_id).where(Winning.prize_id == prize_id)
            ).all()
        self.assertEqual(len(winners), 5)
        self.assertEqual(len(set(winners)), 5)

    def test_participant_never_wins_twice_in_an_event(self) -> None:
        event_id, prize_ids = self._seed(participants=3, quantities=(3, 3))
        self._run([(event_id, prize_id) for prize_id in prize_ids] * 3)

        with self.Session() as session:
            winners = session.scalars(select(Winning.participant_id)).all()
            total = session.scalar(select(func.count(Winning.id)))
        self.assertEqual(total, 3)
        self.assertEqual(len(set(winners)), 3)


if __name__ == "__main__":
    unittest.main()
