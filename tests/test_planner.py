import unittest
from unittest import mock

from routeplanner.config import Settings
from routeplanner.geocode import GeocodeResult
from routeplanner.optimisation import optimise_order
from routeplanner.planner import (
    GeocodingError,
    InvalidInputError,
    MatrixError,
    PostalMismatchError,
    plan_route,
)
from routeplanner.routing import Directions, RoutingError

# start, A, B, C, D; nearest neighbour gives A, C, D, B and 2-opt B, A, C, D
DISTANCES = [
    [0, 1, 2, 10, 10],
    [1, 0, 5, 2, 9],
    [2, 5, 0, 10, 20],
    [10, 2, 10, 0, 1],
    [10, 9, 20, 1, 0],
]
DURATIONS = [[cell * 60 for cell in row] for row in DISTANCES]

LOCATIONS = {
    "100000": GeocodeResult(1.0, 100.0, "Start depot"),
    "100001": GeocodeResult(1.1, 100.1, "Stop A"),
    "100002": GeocodeResult(1.2, 100.2, "Stop B"),
    "100003": GeocodeResult(1.3, 100.3, "Stop C"),
    "100004": GeocodeResult(1.4, 100.4, "Stop D"),
    "100009": GeocodeResult(1.9, 100.9, "Wrong place", postal_mismatch=True),
}

STOPS = ["100001", "100002", "100003", "100004"]


class TestPlanRoute(unittest.TestCase):
    def setUp(self):
        self.settings = Settings()
        self.geocode = self._patch("routeplanner.planner.geocode_location", side_effect=LOCATIONS.get)
        self.matrix = self._patch(
            "routeplanner.planner.compute_distance_matrix", return_value=(DISTANCES, DURATIONS)
        )
        self.directions = self._patch(
            "routeplanner.planner.fetch_directions",
            return_value=Directions(polyline=[(1.0, 100.0), (1.2, 100.2)], instructions=["Depart"]),
        )

    def _patch(self, target, **kwargs):
        patcher = mock.patch(target, **kwargs)
        self.addCleanup(patcher.stop)
        return patcher.start()

    def test_orders_stops(self):
        plan = plan_route("100000", STOPS, stop_minutes=5, settings=self.settings)
        self.assertEqual([stop.query for stop in plan.stops], ["100002", "100001", "100003", "100004"])
        self.assertEqual([stop.index for stop in plan.stops], [1, 0, 2, 3])
        self.assertEqual(plan.stops[0].address, "Stop B")
        self.assertEqual(plan.total_distance, 10)
        self.assertEqual(plan.total_duration, 10 * 60 + 4 * 5 * 60)
        self.assertEqual(plan.warnings, [])
        self.assertEqual(
            self.directions.call_args.args[0],
            [(1.0, 100.0), (1.2, 100.2), (1.1, 100.1), (1.3, 100.3), (1.4, 100.4)],
        )

    def test_end_location_is_not_sequenced(self):
        # The last row/column belongs to the end location and is excluded
        # from ordering but included in the totals.
        with_end = [row + [3] for row in DISTANCES] + [[3] * 6]
        self.matrix.return_value = (with_end, with_end)
        plan = plan_route("100000", STOPS, end="100003", stop_minutes=0, settings=self.settings)
        self.assertEqual(len(plan.stops), 4)
        self.assertEqual(plan.end.address, "Stop C")
        self.assertEqual(plan.total_distance, 10 + 3)
        self.assertEqual(plan.total_duration, 13)

    def test_inputs_are_normalised_and_validated(self):
        with self.assertRaises(InvalidInputError) as ctx:
            plan_route("", ["12 3"], settings=self.settings)
        self.assertIn("Missing start location", ctx.exception.messages)
        self.assertIn("Invalid stop 1", ctx.exception.messages)
        self.geocode.assert_not_called()

    def test_geocoding_failure(self):
        with self.assertRaises(GeocodingError) as ctx:
            plan_route("100000", ["100001", "555555"], settings=self.settings)
        self.assertEqual(ctx.exception.query, "555555")

    def test_postal_mismatch(self):
        with self.assertRaises(PostalMismatchError):
            plan_route("100009", STOPS, settings=self.settings)

    def test_unreachable_stop(self):
        blocked = [row[:] for row in DISTANCES]
        for row in blocked:
            row[2] = None
        self.matrix.return_value = (blocked, DURATIONS)
        with self.assertRaises(MatrixError):
            plan_route("100000", STOPS, settings=self.settings)

    def test_unknown_duration(self):
        durations = [row[:] for row in DURATIONS]
        durations[1][3] = None
        self.matrix.return_value = (DISTANCES, durations)
        with self.assertRaises(MatrixError):
            plan_route("100000", STOPS, settings=self.settings)

    def test_matrix_service_failure(self):
        self.matrix.side_effect = RoutingError("offline")
        with self.assertRaises(MatrixError):
            plan_route("100000", STOPS, settings=self.settings)

    def test_missing_directions_is_a_warning(self):
        self.directions.side_effect = RoutingError("offline")
        plan = plan_route("100000", STOPS, settings=self.settings)
        self.assertIsNone(plan.directions)
        self.assertEqual(len(plan.warnings), 1)

    def test_delivery_tracking(self):
        plan = plan_route("100000", STOPS, settings=self.settings)
        self.assertEqual(plan.next_stop().query, "100002")
        plan.toggle_delivered(0)
        self.assertEqual(plan.delivered_count, 1)
        self.assertEqual(plan.remaining_count, 3)
        self.assertEqual(plan.next_stop().query, "100001")
        for position in range(1, 4):
            plan.toggle_delivered(position)
        self.assertIsNone(plan.next_stop())
        plan.toggle_delivered(0)
        self.assertEqual(plan.next_stop().query, "100002")

    def test_stop_minutes_are_clamped(self):
        plan = plan_route("100000", STOPS, stop_minutes=-10, settings=self.settings)
        self.assertEqual(plan.total_duration, 10 * 60)
        plan = plan_route("100000", STOPS, stop_minutes=999, settings=self.settings)
        self.assertEqual(plan.total_duration, 10 * 60 + 4 * 240 * 60)

    def test_orders_with_sequencing_matrix(self):
        with mock.patch(
            "routeplanner.planner.optimise_order", wraps=optimise_order
        ) as ordering:
            plan_route("100000", STOPS, settings=self.settings)
        ordering.assert_called_once_with(DISTANCES)


if __name__ == "__main__":
    unittest.main()
