"""FleetManager tests: spawning, car-following, reaping and determinism."""

import math
import random
import unittest

from crossroads.core.fleet import FleetManager
from crossroads.entities.traffic_light import Direction, LightPlan, SignalPhase, SignalState
from crossroads.entities.vehicle import VehicleState

from tests.helpers import ALL_GREEN, ALL_RED, DT_MS, make_geometry, quiet_config

S = VehicleState
LEGAL_EDGES = {
    (S.APPROACHING, S.WAITING),
    (S.APPROACHING, S.CROSSING),
    (S.WAITING, S.CROSSING),
    (S.CROSSING, S.TURNING),
    (S.CROSSING, S.EXITING),
    (S.TURNING, S.EXITING),
    (S.EXITING, S.COMPLETED),
}


def alternating_plan() -> LightPlan:
    return LightPlan(phases=[
        SignalPhase(states={Direction.EAST: SignalState.GREEN, Direction.WEST: SignalState.GREEN}, duration_ms=6000),
        SignalPhase(states={Direction.EAST: SignalState.YELLOW, Direction.WEST: SignalState.YELLOW}, duration_ms=1500),
        SignalPhase(states={Direction.NORTH: SignalState.GREEN, Direction.SOUTH: SignalState.GREEN}, duration_ms=6000),
        SignalPhase(states={Direction.NORTH: SignalState.YELLOW, Direction.SOUTH: SignalState.YELLOW}, duration_ms=1500),
    ])


class SpawnTests(unittest.TestCase):
    def setUp(self) -> None:
        self.geometry = make_geometry()
        self.fleet = FleetManager(self.geometry, quiet_config(turn_rate_fraction=0.0), rng=random.Random(1))

    def test_second_spawn_rejected_until_first_clears(self) -> None:
        first = self.fleet.spawn(Direction.NORTH, 0)
        self.assertIsNotNone(first)
        self.assertEqual(first.id, 1)

        self.assertIsNone(self.fleet.spawn(Direction.NORTH, 0))
        self.assertIsNone(self.fleet.spawn(Direction.NORTH, 1))
        self.assertEqual(self.fleet.active_count(), 1)
        self.assertEqual(self.fleet.rejected_count, 2)

        spawn_x, spawn_y = self.geometry.spawn_point(Direction.NORTH, 0)
        ticks = 0
        while math.hypot(first.x - spawn_x, first.y - spawn_y) < 60:
            self.assertIsNone(self.fleet.spawn(Direction.NORTH, 0))
            self.assertEqual(self.fleet.active_count(), 1)
            self.fleet.tick(DT_MS, ALL_GREEN)
            ticks += 1
            self.assertLess(ticks, 500)

        second = self.fleet.spawn(Direction.NORTH, 0)
        self.assertIsNotNone(second)
        self.assertEqual(self.fleet.active_count(), 2)

    def test_other_directions_are_not_blocked(self) -> None:
        self.fleet.spawn(Direction.NORTH, 0)
        for direction in (Direction.EAST, Direction.SOUTH, Direction.WEST):
            self.assertIsNotNone(self.fleet.spawn(direction, 0))
        self.assertEqual([v.id for v in self.fleet.vehicles()], [1, 2, 3, 4])

    def test_spawn_draws_unforced_arguments(self) -> None:
        vehicle = self.fleet.spawn()
        self.assertIn(vehicle.origin, list(Direction))
        self.assertIn(vehicle.lane, (0, 1))
        self.assertEqual(vehicle.turn.value, "straight")

    def test_spawn_interval_follows_rate(self) -> None:
        fleet = FleetManager(self.geometry, quiet_config(spawn_rate_per_ten_seconds=4), rng=random.Random(2))
        for _ in range(10):
            fleet.tick(1000.0, ALL_GREEN)
        # 2500 ms interval, timer reset after each attempt: attempts at 3 s, 6 s, 9 s
        self.assertEqual(fleet.spawned_count + fleet.rejected_count, 3)

    def test_zero_rate_never_spawns(self) -> None:
        for _ in range(1000):
            self.fleet.tick(DT_MS, ALL_GREEN)
        self.assertEqual(self.fleet.active_count(), 0)
        self.assertEqual(self.fleet.spawned_count, 0)

    def test_ids_never_reused(self) -> None:
        first = self.fleet.spawn(Direction.NORTH, 0)
        first.transition(S.CROSSING)
        first.transition(S.EXITING)
        first.x = -100
        self.fleet.tick(DT_MS, ALL_GREEN)
        self.assertEqual(self.fleet.active_count(), 0)

        self.assertEqual(self.fleet.spawn(Direction.NORTH, 0).id, 2)


class PeerQueryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.geometry = make_geometry()
        self.fleet = FleetManager(self.geometry, quiet_config(turn_rate_fraction=0.0), rng=random.Random(3))

    def test_vehicle_ahead_same_direction_only(self) -> None:
        leader = self.fleet.spawn(Direction.NORTH, 0)
        leader.y = 100
        follower = self.fleet.spawn(Direction.NORTH, 1)
        other = self.fleet.spawn(Direction.SOUTH, 0)

        vehicle, distance = self.fleet.vehicle_ahead(follower)
        self.assertIs(vehicle, leader)
        self.assertEqual(distance, 100)
        self.assertIsNone(self.fleet.vehicle_ahead(leader))
        self.assertIsNone(self.fleet.vehicle_ahead(other))

    def test_follower_queues_behind_stopped_leader(self) -> None:
        leader = self.fleet.spawn(Direction.NORTH, 0)
        for _ in range(700):
            self.fleet.tick(DT_MS, ALL_RED)
        self.assertEqual(leader.state, S.WAITING)
        self.assertIsNotNone(leader.wait_start)

        follower = self.fleet.spawn(Direction.NORTH, 0)
        for _ in range(700):
            self.fleet.tick(DT_MS, ALL_RED)

        self.assertEqual(follower.state, S.WAITING)
        gap = leader.y - follower.y
        self.assertLess(gap, 35)
        self.assertGreater(gap, 30)
        # Queueing behind a vehicle does not start the wait clock
        self.assertIsNone(follower.wait_start)
        self.assertEqual(follower.total_wait_time, 0)

        waiting = self.fleet.waiting_vehicles(Direction.NORTH)
        self.assertEqual([v.id for v in waiting], [leader.id, follower.id])
        self.assertEqual(self.fleet.waiting_vehicles(Direction.EAST), [])

    def test_vehicles_returns_copy(self) -> None:
        self.fleet.spawn(Direction.WEST, 0)
        vehicles = self.fleet.vehicles()
        vehicles.clear()
        self.assertEqual(self.fleet.active_count(), 1)


class TickTests(unittest.TestCase):
    def setUp(self) -> None:
        self.geometry = make_geometry()
        self.events = []
        self.fleet = FleetManager(
            self.geometry,
            quiet_config(turn_rate_fraction=0.0),
            rng=random.Random(4),
            on_vehicle_completed=self.events.append,
        )

    def test_completions_reported_in_spawn_order(self) -> None:
        north = self.fleet.spawn(Direction.NORTH, 0)
        east = self.fleet.spawn(Direction.EAST, 0)
        for vehicle in (east, north):
            vehicle.transition(S.CROSSING)
            vehicle.transition(S.EXITING)
        north.y = 1300
        east.x = -60

        returned = self.fleet.tick(DT_MS, ALL_GREEN)

        self.assertEqual([e.vehicle_id for e in self.events], [1, 2])
        self.assertEqual(returned, self.events)
        self.assertEqual(self.events[0].origin_direction, Direction.NORTH)
        self.assertEqual(self.events[0].destination_direction, Direction.SOUTH)
        self.assertEqual(self.fleet.active_count(), 0)
        self.assertEqual(self.fleet.completed_count, 2)

        # Exactly once
        self.assertEqual(self.fleet.tick(DT_MS, ALL_GREEN), [])
        self.assertEqual(len(self.events), 2)

    def test_config_pushed_each_tick(self) -> None:
        self.fleet.spawn(Direction.NORTH, 0)
        self.fleet.spawn(Direction.EAST, 1)
        faster = quiet_config(cruise_speed=40.0)
        self.fleet.tick(DT_MS, ALL_GREEN, config=faster)
        self.assertIs(self.fleet.config, faster)
        self.assertTrue(all(v.cruise_speed == 40.0 for v in self.fleet.vehicles()))

    def test_elapsed_time_is_default_now(self) -> None:
        for _ in range(3):
            self.fleet.tick(250.0, ALL_GREEN)
        self.assertEqual(self.fleet.elapsed_ms, 750.0)

    def test_zero_dt_tick_changes_nothing(self) -> None:
        for direction in Direction:
            self.fleet.spawn(direction, 0)
        for _ in range(400):
            self.fleet.tick(DT_MS, ALL_RED)

        def snapshot():
            return [(v.id, v.state, v.x, v.y, v.speed, v.total_wait_time) for v in self.fleet.vehicles()]

        before = snapshot()
        elapsed = self.fleet.elapsed_ms
        self.assertEqual(self.fleet.tick(0.0, ALL_GREEN), [])
        self.assertEqual(snapshot(), before)
        self.assertEqual(self.fleet.elapsed_ms, elapsed)

    def test_reset(self) -> None:
        self.fleet.spawn(Direction.NORTH, 0)
        self.fleet.spawn(Direction.NORTH, 0)
        self.fleet.tick(DT_MS, ALL_GREEN)
        self.fleet.reset()
        self.assertEqual(self.fleet.active_count(), 0)
        self.assertEqual((self.fleet.spawned_count, self.fleet.rejected_count, self.fleet.completed_count), (0, 0, 0))
        self.assertEqual(self.fleet.elapsed_ms, 0.0)
        self.assertEqual(self.fleet.spawn(Direction.SOUTH, 1).id, 1)


class BusyIntersectionTests(unittest.TestCase):
    """Long randomized runs checking the fleet-wide invariants."""

    def _busy_fleet(self, seed: int) -> FleetManager:
        return FleetManager(
            make_geometry(),
            quiet_config(spawn_rate_per_ten_seconds=60, turn_rate_fraction=0.5),
            rng=random.Random(seed),
        )

    def test_spacing_and_transition_invariants(self) -> None:
        fleet = self._busy_fleet(21)
        geometry = fleet.geometry
        plan = alternating_plan()
        spawned = []
        original_spawn = fleet.spawn

        def checked_spawn(direction=None, lane=None):
            before = [(v.direction, v.x, v.y) for v in fleet.vehicles()]
            vehicle = original_spawn(direction, lane)
            if vehicle is not None:
                sx, sy = geometry.spawn_point(vehicle.origin, vehicle.lane)
                for direction_, x, y in before:
                    if direction_ == vehicle.origin:
                        self.assertGreaterEqual(math.hypot(x - sx, y - sy), 60)
                spawned.append(vehicle)
            return vehicle

        fleet.spawn = checked_spawn

        for tick in range(1, 3001):
            now = tick * DT_MS
            fleet.tick(DT_MS, plan.states_at(now), now=now)
            ids = [v.id for v in fleet.vehicles()]
            self.assertEqual(len(ids), len(set(ids)))

        self.assertGreater(fleet.rejected_count, 0)
        self.assertGreater(fleet.completed_count, 0)
        for vehicle in spawned:
            self.assertTrue(set(vehicle.history) <= LEGAL_EDGES)
            for (_, reached), (left, _) in zip(vehicle.history, vehicle.history[1:]):
                self.assertEqual(reached, left)

    def test_same_seed_same_trajectories(self) -> None:
        plan = alternating_plan()

        def trajectory(seed):
            fleet = self._busy_fleet(seed)
            frames = []
            for tick in range(1, 1501):
                now = tick * DT_MS
                fleet.tick(DT_MS, plan.states_at(now), now=now)
                frames.append([(v.id, v.state, v.x, v.y, v.heading) for v in fleet.vehicles()])
            return frames

        self.assertEqual(trajectory(9), trajectory(9))
        self.assertNotEqual(trajectory(9), trajectory(10))


if __name__ == "__main__":
    unittest.main()
