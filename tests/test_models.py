from __future__ import annotations

import unittest

from sqlalchemy.exc import IntegrityError

from doorprize.db.engine import get_sessionmaker, make_engine
from doorprize.models import (
    Base,
    Event,
    Forfeiture,
    Participant,
    Prize,
    Winning,
)


class ModelConstraintTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine("sqlite+pysqlite:///:memory:")
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)

    def tearDown(self) -> None:
        self.engine.dispose()

    def _seed(self, session):
        event = Event(name="Gala", sequence_number=Event.next_sequence_number(session))
        session.add(event)
        session.flush()
        participant = Participant(
            event_id=event.id, name="Alice", registration_number="E1-0001"
        )
        prize = Prize(event_id=event.id, name="Lamp", quantity=2)
        session.add_all([participant, prize])
        session.flush()
        return event, participant, prize

    def test_defaults_and_helpers(self) -> None:
        with self.Session.begin() as session:
            event, participant, prize = self._seed(session)
            self.assertEqual(event.sequence_number, 1)
            self.assertEqual(event.category, "regular")
            self.assertIsNone(event.capacity)
            self.assertEqual(Event.next_sequence_number(session), 2)
            self.assertEqual(event.participant_count(session), 1)
            self.assertEqual(prize.remaining_quantity(session), 2)

            session.add(Winning(participant_id=participant.id, prize_id=prize.id))
            session.flush()
            self.assertEqual(prize.winnings_count(session), 1)
            self.assertEqual(prize.remaining_quantity(session), 1)
            self.assertIs(
                Participant.get_by_registration_number(session, event.id, "E1-0001"),
                participant,
            )
            self.assertIsNone(
                Participant.get_by_registration_number(session, event.id, "E1-9999")
            )

    def test_prize_quantity_must_be_positive(self) -> None:
        with self.assertRaises(IntegrityError):
            with self.Session.begin() as session:
                event, _, _ = self._seed(session)
                session.add(Prize(event_id=event.id, name="Nothing", quantity=0))

    def test_registration_numbers_are_unique_per_event(self) -> None:
        with self.assertRaises(IntegrityError):
            with self.Session.begin() as session:
                event, _, _ = self._seed(session)
                session.add(
                    Participant(event_id=event.id, name="Bob", registration_number="E1-0001")
                )

    def test_same_prize_cannot_be_won_twice(self) -> None:
        with self.assertRaises(IntegrityError):
            with self.Session.begin() as session:
                _, participant, prize = self._seed(session)
                session.add(Winning(participant_id=participant.id, prize_id=prize.id))
                session.flush()
                session.add(Winning(participant_id=participant.id, prize_id=prize.id))

    def test_exclusivity_group_is_backed_by_a_constraint(self) -> None:
        with self.assertRaises(IntegrityError):
            with self.Session.begin() as session:
                event, participant, prize = self._seed(session)
                other = Prize(event_id=event.id, name="Clock")
                session.add(other)
                session.flush()
                session.add(
                    Winning(participant_id=participant.id, prize_id=prize.id, exclusivity_group="event")
                )
                session.flush()
                session.add(
                    Winning(participant_id=participant.id, prize_id=other.id, exclusivity_group="event")
                )

    def test_null_groups_do_not_collide(self) -> None:
        with self.Session.begin() as session:
            event, participant, prize = self._seed(session)
            other = Prize(event_id=event.id, name="Clock")
            session.add(other)
            session.flush()
            session.add_all(
                [
                    Winning(participant_id=participant.id, prize_id=prize.id),
                    Winning(participant_id=participant.id, prize_id=other.id),
                ]
            )
            session.flush()
            self.assertEqual(len(participant.winnings), 2)

    def test_foreign_keys_are_enforced(self) -> None:
        with self.assertRaises(IntegrityError):
            with self.Session.begin() as session:
                session.add(Forfeiture(event_id=404, participant_id=404))


if __name__ == "__main__":
    unittest.main()
