"""
Testes do filtro de candidatos e do planejador de cortes
"""

import itertools
import random
import unittest
from datetime import date
from unittest import mock

from slitplanner.core import (
    APPROXIMATE_ALGORITHM, EXACT_ALGORITHM, SlitPlanner, select_candidates
)
from slitplanner.models import CuttingConstraints, ErrorKind

from tests.factories import make_order, make_roll, scenario_a


class TestSelectCandidates(unittest.TestCase):

    def setUp(self):
        self.rolls = [
            make_roll(roll_id="A", material_type="PVC-A"),
            make_roll(roll_id="B", material_type="ALU-FOIL"),
            make_roll(roll_id="C", material_type="PVC-A", width=350, weight=45, is_remnant=True),
        ]
        self.orders = [
            make_order(220, order_id="O1"),
            make_order(310, order_id="O2", is_fulfilled=True),
            make_order(150, order_id="O3"),
        ]

    def test_filters_material_and_fulfilled_orders(self):
        candidates = select_candidates(self.rolls, self.orders, "PVC-A")
        self.assertEqual([r.id for r in candidates.rolls], ["A", "C"])
        self.assertEqual([o.id for o in candidates.orders], ["O1", "O3"])

    def test_without_material_keeps_all_rolls(self):
        candidates = select_candidates(self.rolls, self.orders)
        self.assertEqual(len(candidates.rolls), 3)

    def test_no_matching_material_returns_empty_set(self):
        candidates = select_candidates(self.rolls, self.orders, "PVC-B")
        self.assertEqual(candidates.rolls, [])
        self.assertTrue(candidates.is_empty)

    def test_is_idempotent_and_does_not_touch_inputs(self):
        before = [r.model_dump() for r in self.rolls]
        first = select_candidates(self.rolls, self.orders, "PVC-A")
        second = select_candidates(self.rolls, self.orders, "PVC-A")
        self.assertEqual(first, second)
        self.assertEqual([r.model_dump() for r in self.rolls], before)


class TestScenarios(unittest.TestCase):

    def setUp(self):
        self.planner = SlitPlanner(CuttingConstraints(kerf_width=2, trim_margin=10))

    def test_scenario_a_selects_all_orders(self):
        roll, orders = scenario_a()
        result = self.planner.plan(roll, orders)

        self.assertTrue(result.success)
        plan = result.plan
        self.assertEqual(plan.roll_id, "RM-001")
        self.assertEqual(plan.order_ids, ["ORD-101", "ORD-102", "ORD-103", "ORD-104"])
        self.assertAlmostEqual(plan.usable_width, 1180)
        self.assertAlmostEqual(plan.used_width, 906)
        self.assertAlmostEqual(plan.waste_width, 274)
        self.assertEqual(round(plan.efficiency, 1), 75.5)
        self.assertEqual(plan.blade_positions, [10, 230, 542, 694, 916])
        self.assertEqual(plan.algorithm_used, EXACT_ALGORITHM)
        self.assertTrue(plan.exact)

    def test_scenario_a_strip_layout(self):
        roll, orders = scenario_a()
        plan = self.planner.plan(roll, orders).plan
        starts = [strip.position_x for strip in plan.strips]
        self.assertEqual(starts, [10, 232, 544, 696])
        self.assertEqual([s.sequence for s in plan.strips], [1, 2, 3, 4])

    def test_scenario_b_no_feasible_plan(self):
        roll = make_roll(width=300, weight=100)
        result = self.planner.plan(roll, [make_order(310)])
        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorKind.NO_FEASIBLE_PLAN)
        self.assertIsNone(result.plan)
        self.assertIn("280", result.message)

    def test_scenario_c_no_candidate_roll_without_search(self):
        rolls = [make_roll(material_type="PVC-A")]
        with mock.patch.object(SlitPlanner, "_exact_subset") as search:
            result = self.planner.plan_best(rolls, [make_order(100)], material_type="ALU-FOIL")
        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorKind.NO_CANDIDATE_ROLL)
        search.assert_not_called()

    def test_missing_roll_signals_no_candidate(self):
        result = self.planner.plan(None, [make_order(100)])
        self.assertEqual(result.error, ErrorKind.NO_CANDIDATE_ROLL)

    def test_empty_order_pool_is_not_a_degenerate_plan(self):
        result = self.planner.plan(make_roll(), [])
        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorKind.NO_FEASIBLE_PLAN)

    def test_fulfilled_orders_are_ignored(self):
        roll = make_roll(width=520)
        orders = [make_order(400, order_id="done", is_fulfilled=True), make_order(100, order_id="open")]
        plan = self.planner.plan(roll, orders).plan
        self.assertEqual(plan.order_ids, ["open"])

    def test_trim_wider_than_roll(self):
        roll = make_roll(width=15, weight=1)
        result = self.planner.plan(roll, [make_order(1)])
        self.assertEqual(result.error, ErrorKind.NO_FEASIBLE_PLAN)


class TestKerfAndTieBreaks(unittest.TestCase):

    def test_kerf_is_charged_between_strips(self):
        planner = SlitPlanner(CuttingConstraints(kerf_width=2, trim_margin=10))
        roll = make_roll(width=520)

        plan = planner.plan(roll, [make_order(250, order_id="a"), make_order(250, order_id="b")]).plan
        self.assertEqual(len(plan.cuts), 1)

        plan = planner.plan(roll, [make_order(249, order_id="a"), make_order(249, order_id="b")]).plan
        self.assertEqual(len(plan.cuts), 2)
        self.assertAlmostEqual(plan.used_width, 500)
        self.assertAlmostEqual(plan.waste_width, 0)

    def test_prefers_subset_with_earliest_due_date(self):
        planner = SlitPlanner(CuttingConstraints(kerf_width=0, trim_margin=10))
        roll = make_roll(width=520)
        orders = [
            make_order(250, day=3, order_id="G"),
            make_order(250, day=4, order_id="H"),
            make_order(300, day=1, order_id="E"),
            make_order(200, day=5, order_id="F"),
        ]
        plan = planner.plan(roll, orders).plan
        self.assertEqual(sorted(plan.order_ids), ["E", "F"])
        self.assertAlmostEqual(plan.used_width, 500)

    def test_prefers_more_orders_on_equal_width_and_due_date(self):
        planner = SlitPlanner(CuttingConstraints(kerf_width=0, trim_margin=10))
        roll = make_roll(width=520)
        orders = [
            make_order(300, day=1, order_id="E"),
            make_order(200, day=5, order_id="F"),
            make_order(100, day=6, order_id="P"),
            make_order(100, day=7, order_id="Q"),
        ]
        plan = planner.plan(roll, orders).plan
        self.assertEqual(plan.order_ids, ["E", "P", "Q"])


class TestExactSearch(unittest.TestCase):

    def _brute_force(self, orders, usable, kerf):
        best = None
        for k in range(1, len(orders) + 1):
            for subset in itertools.combinations(orders, k):
                consumed = round(sum(o.required_width for o in subset) + kerf * (k - 1), 6)
                if consumed > usable + 1e-6:
                    continue
                key = (consumed, -min(o.due_date for o in subset).toordinal(), k)
                if best is None or key > best:
                    best = key
        return best

    def test_matches_brute_force_on_random_instances(self):
        rng = random.Random(20231101)
        planner = SlitPlanner(CuttingConstraints(kerf_width=2, trim_margin=10))

        for _ in range(40):
            orders = [
                make_order(rng.randint(50, 400), order_id=f"O{i}",
                           due_date=date(2023, 11, rng.randint(1, 10)))
                for i in range(rng.randint(1, 9))
            ]
            roll = make_roll(width=rng.randint(200, 1500))
            usable = roll.width - 20
            expected = self._brute_force(orders, usable, 2)
            result = planner.plan(roll, orders)

            if expected is None:
                self.assertEqual(result.error, ErrorKind.NO_FEASIBLE_PLAN)
                continue

            plan = result.plan
            got = (plan.used_width, -min(o.due_date for o in plan.cuts).toordinal(), len(plan.cuts))
            self.assertEqual(got, expected)

    def test_fractional_widths_find_the_optimum(self):
        planner = SlitPlanner(CuttingConstraints(kerf_width=0, trim_margin=10))
        roll = make_roll(width=120)
        orders = [
            make_order(50.4, day=1, order_id="A"),
            make_order(49.8, day=2, order_id="B"),
            make_order(49.5, day=3, order_id="C"),
        ]

        plan = planner.plan(roll, orders).plan

        self.assertEqual(plan.order_ids, ["A", "C"])
        self.assertAlmostEqual(plan.used_width, 99.9)
        self.assertTrue(plan.exact)

    def test_matches_brute_force_with_fractional_widths(self):
        rng = random.Random(99)
        planner = SlitPlanner(CuttingConstraints(kerf_width=2.5, trim_margin=10))

        for _ in range(25):
            orders = [
                make_order(rng.randint(500, 4000) / 10, order_id=f"O{i}",
                           due_date=date(2023, 11, rng.randint(1, 10)))
                for i in range(rng.randint(1, 8))
            ]
            roll = make_roll(width=rng.randint(200, 1000))
            expected = self._brute_force(orders, roll.width - 20, 2.5)
            result = planner.plan(roll, orders)

            if expected is None:
                self.assertEqual(result.error, ErrorKind.NO_FEASIBLE_PLAN)
                continue

            plan = result.plan
            self.assertTrue(plan.exact)
            got = (round(plan.used_width, 6), -min(o.due_date for o in plan.cuts).toordinal(),
                   len(plan.cuts))
            self.assertEqual(got, expected)

    def test_widths_finer_than_the_grid_stay_feasible_but_not_exact(self):
        planner = SlitPlanner(CuttingConstraints(kerf_width=0, trim_margin=10))
        roll = make_roll(width=120)
        orders = [make_order(50.004, order_id="A"), make_order(49.995, order_id="B")]

        plan = planner.plan(roll, orders).plan

        self.assertFalse(plan.exact)
        self.assertLessEqual(plan.used_width, 100)
        self.assertEqual(len(plan.cuts), 1)

    def test_plan_invariants(self):
        rng = random.Random(7)
        planner = SlitPlanner(CuttingConstraints(kerf_width=3.5, trim_margin=12))

        for _ in range(30):
            orders = [make_order(rng.randint(40, 600)) for _ in range(rng.randint(1, 12))]
            roll = make_roll(width=rng.randint(500, 2000))
            result = planner.plan(roll, orders)
            if not result.success:
                continue
            plan = result.plan
            self.assertAlmostEqual(plan.used_width + plan.waste_width, roll.width - 24)
            self.assertGreaterEqual(plan.waste_width, -1e-6)
            self.assertGreater(plan.efficiency, 0)
            self.assertLessEqual(plan.efficiency, 100)
            self.assertEqual(len(plan.blade_positions), len(plan.cuts) + 1)
            self.assertTrue(all(a < b for a, b in zip(plan.blade_positions, plan.blade_positions[1:])))
            self.assertAlmostEqual(plan.blade_positions[-1], 12 + plan.used_width)


class TestApproximateMode(unittest.TestCase):

    def setUp(self):
        self.planner = SlitPlanner(CuttingConstraints(kerf_width=0, trim_margin=10))
        self.roll = make_roll(width=520)
        self.orders = [
            make_order(300, day=1, order_id="big"),
            make_order(250, day=2, order_id="m1"),
            make_order(250, day=3, order_id="m2"),
        ]

    def test_greedy_is_flagged_and_can_be_worse(self):
        approx = self.planner.plan(self.roll, self.orders, approximate=True).plan
        exact = self.planner.plan(self.roll, self.orders).plan

        self.assertEqual(approx.algorithm_used, APPROXIMATE_ALGORITHM)
        self.assertFalse(approx.exact)
        self.assertEqual(approx.order_ids, ["big"])
        self.assertAlmostEqual(exact.used_width, 500)
        self.assertLess(approx.used_width, exact.used_width)

    def test_deadline_falls_back_to_greedy(self):
        planner = SlitPlanner(CuttingConstraints(kerf_width=0, trim_margin=10), time_limit_ms=1)
        clock = itertools.count(0, 1.0)
        with mock.patch("slitplanner.core.time.perf_counter", side_effect=lambda: next(clock)):
            with self.assertLogs("slitplanner.core", level="WARNING"):
                result = planner.plan(self.roll, self.orders)

        self.assertTrue(result.success)
        self.assertFalse(result.plan.exact)
        self.assertEqual(result.metadata["algorithm"], APPROXIMATE_ALGORITHM)


class TestPlanBest(unittest.TestCase):

    def test_picks_roll_with_highest_efficiency(self):
        planner = SlitPlanner()
        rolls = [
            make_roll(roll_id="wide", width=1200),
            make_roll(roll_id="narrow", width=350, weight=45, is_remnant=True),
        ]
        orders = [make_order(310, order_id="O1")]
        result = planner.plan_best(rolls, orders)
        self.assertTrue(result.success)
        self.assertEqual(result.plan.roll_id, "narrow")
        self.assertEqual(result.metadata["rolls_tried"], 2)

    def test_reports_no_fit_when_every_roll_fails(self):
        planner = SlitPlanner()
        result = planner.plan_best([make_roll(width=300)], [make_order(310)])
        self.assertEqual(result.error, ErrorKind.NO_FEASIBLE_PLAN)


if __name__ == "__main__":
    unittest.main()
