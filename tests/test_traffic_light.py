"""Directions, signal states and light plans."""

import tempfile
import unittest
from pathlib import Path

from crossroads.entities.traffic_light import (
    Direction,
    LightPlan,
    SignalPhase,
    SignalState,
    uniform_states,
)


class DirectionTests(unittest.TestCase):
    def test_rotation_cycle(self) -> None:
        self.assertEqual(Direction.NORTH.rotate(1), Direction.EAST)
        self.assertEqual(Direction.NORTH.rotate(-1), Direction.WEST)
        self.assertEqual(Direction.WEST.rotate(1), Direction.NORTH)
        self.assertEqual(Direction.SOUTH.rotate(6), Direction.NORTH)
        self.assertEqual(Direction.opposite(Direction.EAST), Direction.WEST)

    def test_travel_is_reverse_of_outward(self) -> None:
        for direction in Direction:
            ox, oy = direction.outward
            self.assertEqual(direction.travel, (-ox, -oy))
        self.assertEqual(Direction.NORTH.outward, (0.0, -1.0))

    def test_from_string(self) -> None:
        self.assertEqual(Direction.from_string("South"), Direction.SOUTH)
        with self.assertRaises(ValueError):
            Direction.from_string("up")


class LightPlanTests(unittest.TestCase):
    PLAN = {
        "phases": [
            {"duration_ms": 10000, "states": {"east": "green", "west": "green"}},
            {"duration_ms": 3000, "states": {"east": "yellow", "west": "yellow"}},
            {"duration_ms": 10000, "states": {"north": "green", "south": "green"}},
        ]
    }

    def test_states_cycle_through_phases(self) -> None:
        plan = LightPlan.from_dict(self.PLAN)
        self.assertEqual(plan.cycle_ms, 23000)

        self.assertEqual(plan.states_at(0)[Direction.EAST], SignalState.GREEN)
        self.assertEqual(plan.states_at(0)[Direction.NORTH], SignalState.RED)
        self.assertEqual(plan.states_at(10000)[Direction.WEST], SignalState.YELLOW)
        self.assertEqual(plan.states_at(13000)[Direction.SOUTH], SignalState.GREEN)
        self.assertEqual(plan.states_at(23000 + 500), plan.states_at(500))

    def test_unlisted_directions_are_red(self) -> None:
        phase = SignalPhase.from_dict({"duration_ms": 500, "states": {"north": "green"}})
        self.assertEqual(phase.states[Direction.EAST], SignalState.RED)
        self.assertEqual(len(phase.states), 4)

    def test_invalid_entries_rejected(self) -> None:
        with self.assertRaises(ValueError):
            LightPlan.from_dict({"phases": [{"duration_ms": 1000, "states": {"north": "blue"}}]})
        with self.assertRaises(ValueError):
            LightPlan.from_dict({"phases": [{"duration_ms": 1000, "states": {"up": "red"}}]})
        with self.assertRaises(ValueError):
            SignalPhase(states={}, duration_ms=0)

    def test_default_plan_is_green(self) -> None:
        self.assertEqual(LightPlan().states_at(123456), uniform_states(SignalState.GREEN))
        self.assertEqual(LightPlan.constant(SignalState.RED).states_at(0)[Direction.WEST], SignalState.RED)

    def test_states_at_returns_copy(self) -> None:
        plan = LightPlan.constant(SignalState.GREEN)
        plan.states_at(0)[Direction.NORTH] = SignalState.RED
        self.assertEqual(plan.states_at(0)[Direction.NORTH], SignalState.GREEN)

    def test_from_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "plan.yaml"
            path.write_text(
                "phases:\n"
                "  - duration_ms: 4000\n"
                "    states: {north: green, south: green}\n"
                "  - duration_ms: 4000\n"
                "    states: {east: green, west: green}\n"
            )
            plan = LightPlan.from_yaml(path)
        self.assertEqual(len(plan.phases), 2)
        self.assertEqual(plan.states_at(4500)[Direction.EAST], SignalState.GREEN)
        self.assertEqual(plan.states_at(4500)[Direction.NORTH], SignalState.RED)

    def test_bundled_plan_loads(self) -> None:
        from config.settings import CONFIG_DIR

        plan = LightPlan.from_yaml(CONFIG_DIR / "light_plan.yaml")
        self.assertEqual(plan.cycle_ms, 26000)


if __name__ == "__main__":
    unittest.main()
