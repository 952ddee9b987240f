"""Seed the development database with a demo event ready to draw."""

from __future__ import annotations

import argparse
import logging

from doorprize.db.engine import get_sessionmaker, make_engine
from doorprize.models import Base
from doorprize.workflows import add_prize, create_event, register_participant

logger = logging.getLogger(__name__)

INSTITUTIONS = ("Tohoku Univ.", "NICT", "Sendai City", None)

PRIZES = (
    ("Grand Prize: Tablet", "main", 1),
    ("Wireless Earbuds", "regular", 3),
    ("Coffee Voucher", "regular", 10),
)


def main(argv: list[str] | None = None) -> None:
    """Reset the schema and insert an event, participants, and prizes."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--participants", type=int, default=50)
    parser.add_argument("--capacity", type=int, default=None)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    engine = make_engine()

    # SQLite refuses to drop tables referenced by live foreign keys.
    with engine.connect() as conn:
        if conn.dialect.name == "sqlite":
            conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        if conn.dialect.name == "sqlite":
            conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        conn.commit()

    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    with Session.begin() as session:
        event = create_event(
            session, "Year-end Party", category="main", capacity=args.capacity
        )
        for index in range(1, args.participants + 1):
            register_participant(
                session,
                event,
                f"Guest {index:03d}",
                institution=INSTITUTIONS[index % len(INSTITUTIONS)],
            )
        for name, category, quantity in PRIZES:
            add_prize(session, event, name, category=category, quantity=quantity)

        logger.info(
            "Seeded event %s (E%s) with %d participants and %d prizes",
            event.id,
            event.sequence_number,
            args.participants,
            len(PRIZES),
        )


if __name__ == "__main__":
    main()
