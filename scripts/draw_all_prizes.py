"""Draw every remaining winner of an event without operator confirmation."""

from __future__ import annotations

import argparse
import logging

from doorprize.prize_draw import Actor
from doorprize.workflows import draw_all_prizes, make_draw_workflow

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("event_id", type=int)
    parser.add_argument("--actor", default="batch")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    workflow = make_draw_workflow()
    results = draw_all_prizes(workflow, args.event_id, Actor(identity=args.actor))

    for result in results:
        logger.info(
            "Prize %s: %d winners drawn%s",
            result.prize_id,
            len(result.winnings),
            "" if result.complete else f", stopped ({result.stopped_by})",
        )


if __name__ == "__main__":
    main()
