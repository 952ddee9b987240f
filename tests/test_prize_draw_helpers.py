from __future__ import annotations

import hashlib
import unittest
from collections import Counter

from doorprize.models import Participant, Prize
from doorprize.prize_draw import (
    DEFAULT_POLICY_REGISTRY,
    AnimationPlan,
    AnimationSequenceGenerator,
    DrawEngine,
    EmptyPool,
    ExclusivityPolicy,
    FixedRandomSource,
    PolicyRegistry,
    RandomnessToken,
    SeededRandomSource,
    generate_animation_plan,
    normalize_identifier,
    select_winner,
)
from doorprize.prize_draw.randomness import uniform_index


def _participant(pid: int, number: str | None = None) -> Participant:
    return Participant(
        id=pid,
        event_id=1,
        name=f"Guest {pid}",
        registration_number=number or f"E1-{pid:04d}",
    )


def _prize(pid: int, category: str = "regular") -> Prize:
    return Prize(id=pid, event_id=1, name=f"Prize {pid}", category=category, quantity=1)


class NormalizeIdentifierTests(unittest.TestCase):
    def test_keeps_last_characters(self) -> None:
        self.assertEqual(normalize_identifier("E1-0042", 4), "0042")
        self.assertEqual(normalize_identifier("E12-1234", 6), "121234")

    def test_pads_short_identifiers(self) -> None:
        self.assertEqual(normalize_identifier("7", 3), "007")
        self.assertEqual(normalize_identifier("", 2), "00")

    def test_strips_separators_and_whitespace(self) -> None:
        self.assertEqual(normalize_identifier(" A_B.C/D:9 ", 5), "ABCD9")

    def test_rejects_invalid_reel_count(self) -> None:
        with self.assertRaises(ValueError):
            normalize_identifier("E1-0042", 0)


class AnimationPlanTests(unittest.TestCase):
    def test_reels_stop_on_the_registration_digits(self) -> None:
        plan = generate_animation_plan("E1-0042", 4)
        self.assertEqual(plan.display_number, "0042")
        self.assertEqual(plan.terminal_symbols, ("0", "0", "4", "2"))

    def test_same_input_produces_identical_plan(self) -> None:
        first = generate_animation_plan("E3-0917", 4).to_dict()
        second = generate_animation_plan("E3-0917", 4).to_dict()
        self.assertEqual(first, second)

    def test_non_digit_characters_pass_through(self) -> None:
        plan = generate_animation_plan("VIP-A7", 4)
        self.assertEqual(plan.terminal_symbols, ("I", "P", "A", "7"))

    def test_reels_stop_left_to_right(self) -> None:
        generator = AnimationSequenceGenerator(stagger_ms=500, first_stop_ms=200, final_spin_ms=800)
        plan = generator.generate("E1-0042", 4)
        self.assertEqual(plan.reel_delays, [200, 700, 1200, 1700])
        self.assertEqual(plan.animation_duration_ms, 2200)
        self.assertEqual(plan.final_spin_duration_ms, 800)

    def test_payload_shape(self) -> None:
        payload = generate_animation_plan("E1-0042", 4).to_dict()
        for index in range(1, 5):
            self.assertEqual(len(payload[f"reel{index}"]), 40)
        self.assertEqual(payload["reel_delays"], [0, 1000, 2000, 3000])
        self.assertEqual(payload["animation_duration"], 4000)
        self.assertEqual(payload["final_spin_duration"], 1000)
        self.assertEqual(payload["display_number"], "0042")
        self.assertEqual(AnimationPlan.from_dict(payload).to_dict(), payload)

    def test_fillers_come_from_the_pool(self) -> None:
        pool = ["E1-0011", "E1-0022", "E1-0033"]
        plan = AnimationSequenceGenerator(reel_length=30).generate(
            "E1-0042", 4, filler_identifiers=pool
        )
        for index, reel in enumerate(plan.reels):
            allowed = {normalize_identifier(value, 4)[index] for value in pool}
            self.assertTrue(set(reel.symbols[:-1]) <= allowed)
            self.assertEqual(len(reel.symbols), 30)

    def test_invalid_geometry(self) -> None:
        with self.assertRaises(ValueError):
            AnimationSequenceGenerator(stagger_ms=0)
        with self.assertRaises(ValueError):
            AnimationSequenceGenerator(reel_length=0)


class RandomnessTests(unittest.TestCase):
    def test_token_hides_raw_bytes(self) -> None:
        raw = bytes(range(32))
        token = RandomnessToken(raw)
        self.assertNotIn(raw.hex(), repr(token))
        self.assertEqual(token.digest, hashlib.sha256(raw).hexdigest())

    def test_token_requires_enough_entropy(self) -> None:
        with self.assertRaises(ValueError):
            RandomnessToken(b"short")

    def test_seeded_source_replays(self) -> None:
        first = SeededRandomSource(42)
        second = SeededRandomSource(42)
        self.assertEqual(
            [first.token().digest for _ in range(3)],
            [second.token().digest for _ in range(3)],
        )

    def test_uniform_index_bounds(self) -> None:
        token = FixedRandomSource(b"\xff" * 32).token()
        self.assertEqual(uniform_index(token, 1), 0)
        self.assertIn(uniform_index(token, 7), range(7))
        with self.assertRaises(ValueError):
            uniform_index(token, 0)

    def test_uniform_index_is_roughly_uniform(self) -> None:
        source = SeededRandomSource(2026)
        counts = Counter(uniform_index(source.token(), 3) for _ in range(6000))
        for bucket in range(3):
            self.assertGreater(counts[bucket], 1750)
            self.assertLess(counts[bucket], 2250)


class DrawEngineTests(unittest.TestCase):
    def test_empty_pool_raises(self) -> None:
        with self.assertRaises(EmptyPool):
            DrawEngine(SeededRandomSource(1)).draw([])

    def test_selection_ignores_pool_order(self) -> None:
        pool = [_participant(pid) for pid in (5, 3, 9, 1)]
        token = SeededRandomSource(7).token()
        forward = select_winner(pool, token)
        backward = select_winner(list(reversed(pool)), token)
        self.assertEqual(forward.id, backward.id)

    def test_outcome_reports_pool_and_hides_token(self) -> None:
        raw = b"\x01" * 32
        engine = DrawEngine(FixedRandomSource(raw))
        pool = [_participant(pid) for pid in range(1, 11)]
        outcome = engine.draw(pool)
        self.assertEqual(outcome.pool_size, 10)
        self.assertIn(outcome.winner, pool)
        self.assertNotIn(raw.hex(), repr(outcome))

    def test_single_candidate_always_wins(self) -> None:
        only = _participant(12)
        outcome = DrawEngine(SeededRandomSource(3)).draw([only])
        self.assertIs(outcome.winner, only)


class ExclusivityPolicyTests(unittest.TestCase):
    def test_event_policy_blocks_every_other_prize(self) -> None:
        policy = DEFAULT_POLICY_REGISTRY.get("event")
        self.assertTrue(policy.conflicts(_prize(1), _prize(2, "main")))

    def test_none_policy_only_blocks_the_same_prize(self) -> None:
        policy = DEFAULT_POLICY_REGISTRY.get("none")
        self.assertTrue(policy.conflicts(_prize(1), _prize(1)))
        self.assertFalse(policy.conflicts(_prize(1), _prize(2)))
        self.assertIsNone(policy.group_for(_prize(1)))

    def test_main_and_category_policies(self) -> None:
        main = DEFAULT_POLICY_REGISTRY.get("main")
        self.assertTrue(main.conflicts(_prize(1, "main"), _prize(2, "main")))
        self.assertFalse(main.conflicts(_prize(1, "regular"), _prize(2, "regular")))

        category = DEFAULT_POLICY_REGISTRY.get("category")
        self.assertTrue(category.conflicts(_prize(1), _prize(2)))
        self.assertFalse(category.conflicts(_prize(1, "main"), _prize(2, "regular")))

    def test_registry_rejects_duplicates_unless_replacing(self) -> None:
        registry = PolicyRegistry()
        policy = ExclusivityPolicy(key="custom", grouper=lambda prize: prize.name)
        registry.register(policy)
        with self.assertRaises(ValueError):
            registry.register(policy)
        registry.register(policy, replace=True)
        self.assertEqual(set(registry.available_policies()), {"custom"})
        with self.assertRaises(KeyError):
            registry.get("missing")


if __name__ == "__main__":
    unittest.main()
