#!/usr/bin/env python3
"""
Crossroads - single-intersection traffic simulation

Runs the intersection headless under a scripted light plan and reports
throughput and wait times.

Run with: python main.py --duration 120 --seed 7
"""

import sys
import argparse
import logging
from pathlib import Path
import time

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import Settings, get_settings
from crossroads.core.event_bus import Event, EventType, reset_event_bus, get_event_bus
from crossroads.core.simulation import Simulation

logger = logging.getLogger(__name__)


class Application:
    """Main application class."""

    def __init__(self, args: argparse.Namespace) -> None:
        self.args = args
        self.settings = Settings.load(Path(args.config)) if args.config else get_settings()
        if args.seed is not None:
            self.settings.simulation.seed = args.seed

        self.light_plan_path = Path(args.light_plan) if args.light_plan else None
        self.simulation: Simulation | None = None

    def initialize(self) -> None:
        """Initialize simulation."""
        reset_event_bus()
        get_event_bus().subscribe(EventType.VEHICLE_COMPLETED, self._on_vehicle_completed)
        get_event_bus().subscribe(EventType.SIGNAL_PHASE_CHANGED, self._on_phase_changed)

        self.simulation = Simulation(settings=self.settings)
        self.simulation.initialize(self.light_plan_path)
        self.simulation.clock.set_speed(self.args.speed)

    def run(self) -> None:
        """Run for the requested simulated duration."""
        self.initialize()
        sim = self.simulation
        n_ticks = int(self.args.duration * sim.clock.ticks_per_second)

        logger.info(f"Running {self.args.duration:.0f} s of simulated time ({n_ticks} ticks)")

        if self.args.realtime:
            last_time = time.time()
            while sim.clock.tick < n_ticks:
                current_time = time.time()
                sim.update(current_time - last_time)
                last_time = current_time
                time.sleep(1.0 / sim.clock.ticks_per_second)
        else:
            sim.run_ticks(n_ticks)

        self._print_summary()

    def _on_vehicle_completed(self, event: Event) -> None:
        logger.debug(
            f"Vehicle {event.data['vehicle_id']} {event.data['origin']} -> "
            f"{event.data['destination']} waited {event.data['total_wait_time']:.0f} ms"
        )

    def _on_phase_changed(self, event: Event) -> None:
        green = [d for d, s in event.data["states"].items() if s != "red"]
        logger.debug(f"Tick {event.tick}: phase change, moving: {', '.join(green) or 'none'}")

    def _print_summary(self) -> None:
        """Print end-of-run metrics."""
        sim = self.simulation
        m = sim.state.current_metrics

        print("\n" + "=" * 50)
        print(f"CROSSROADS SUMMARY  ({sim.clock.format_time()} simulated)")
        print("=" * 50)
        print(f"  Vehicles spawned:    {m.vehicles_spawned}")
        print(f"  Vehicles completed:  {m.vehicles_completed}")
        print(f"  Spawns rejected:     {m.spawns_rejected}")
        print(f"  Still active:        {m.active_vehicles}")
        print(f"  Average wait:        {m.average_wait_time / 1000:.2f} s")
        print(f"  Throughput:          {m.throughput:.2f} vehicles/min")
        for direction, waits in sim.state.wait_times_by_origin().items():
            if len(waits):
                print(f"    {direction.value:>5}: {len(waits)} completed, mean wait {waits.mean() / 1000:.2f} s")
        print("=" * 50 + "\n")


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Crossroads - single-intersection traffic simulation"
    )

    parser.add_argument(
        "-d", "--duration",
        type=float,
        default=120.0,
        help="Simulated seconds to run (default: 120)"
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to settings YAML file"
    )

    parser.add_argument(
        "-l", "--light-plan",
        type=str,
        help="Path to light plan YAML file"
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible runs"
    )

    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Pace ticks against the wall clock instead of running flat out"
    )

    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        help="Simulated seconds per wall second with --realtime (default: 1.0)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser.parse_args()


def main() -> None:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        app = Application(args)
        app.run()
    except KeyboardInterrupt:
        print("\nExiting...")
    except Exception:
        logger.exception("Simulation failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
