import unittest

from barline.config import TrackerConfig
from barline.geometry import BoundingBox, Detection, Point
from barline.tracking.store import BarPath, PathStore


def _detection(x: float, y: float, ts: int, half: float = 0.02) -> Detection:
    return Detection(bbox=BoundingBox(x - half, y - half, x + half, y + half), timestamp_ms=ts)


class GeometryTests(unittest.TestCase):
    def test_detection_point_is_bbox_center(self) -> None:
        detection = Detection(bbox=BoundingBox(0.2, 0.4, 0.4, 0.6), timestamp_ms=42)
        point = detection.to_point()
        self.assertAlmostEqual(point.x, 0.3)
        self.assertAlmostEqual(point.y, 0.5)
        self.assertEqual(point.timestamp_ms, 42)

    def test_distance_ignores_time(self) -> None:
        self.assertAlmostEqual(Point(0.0, 0.0, 0).distance_to(Point(0.3, 0.4, 999)), 0.5)


class PathStoreTests(unittest.TestCase):
    def test_far_apart_detections_spawn_separate_paths(self) -> None:
        store = PathStore()
        store.add_detection(_detection(0.2, 0.2, 0), now=0)
        paths = store.add_detection(_detection(0.8, 0.8, 10), now=10)
        self.assertEqual(len(paths), 2)
        self.assertEqual([len(p.points) for p in paths], [1, 1])
        self.assertNotEqual(paths[0].color, paths[1].color)

    def test_detection_joins_nearest_recent_path(self) -> None:
        store = PathStore()
        store.add_detection(_detection(0.30, 0.5, 0), now=0)
        store.add_detection(_detection(0.50, 0.5, 0), now=0)
        paths = store.add_detection(_detection(0.43, 0.5, 100), now=100)
        self.assertEqual(len(paths), 2)
        self.assertEqual(len(paths[0].points), 1)
        self.assertEqual(len(paths[1].points), 2)

    def test_detection_beyond_match_distance_starts_new_path(self) -> None:
        store = PathStore(TrackerConfig(max_active_paths=3))
        store.add_detection(_detection(0.30, 0.5, 0), now=0)
        paths = store.add_detection(_detection(0.45, 0.5, 100), now=100)
        self.assertEqual(len(paths), 2)

    def test_path_outside_recency_window_is_not_extended(self) -> None:
        store = PathStore(TrackerConfig(max_active_paths=3))
        store.add_detection(_detection(0.5, 0.5, 0), now=0)
        paths = store.add_detection(_detection(0.5, 0.5, 2000), now=2000)
        self.assertEqual(len(paths), 2)

    def test_capacity_evicts_path_with_oldest_last_point(self) -> None:
        store = PathStore()
        store.add_detection(_detection(0.2, 0.2, 0), now=0)
        store.add_detection(_detection(0.8, 0.8, 100), now=100)
        store.add_detection(_detection(0.21, 0.2, 200), now=200)
        paths = store.add_detection(_detection(0.5, 0.9, 300), now=300)

        self.assertEqual(len(paths), 2)
        self.assertEqual(sorted(p.last_timestamp for p in paths), [200, 300])
        self.assertEqual([len(p.points) for p in paths], [2, 1])

    def test_points_match_ingested_detections_in_time_order(self) -> None:
        store = PathStore()
        for i in range(25):
            store.add_detection(_detection(0.5, 0.3 + i * 0.01, i * 33), now=i * 33)

        (path,) = store.paths
        self.assertEqual(len(path.points), 25)
        timestamps = [p.timestamp_ms for p in path.points]
        self.assertEqual(timestamps, sorted(timestamps))
        self.assertEqual(len(set(timestamps)), 25)

    def test_out_of_order_detection_is_dropped(self) -> None:
        store = PathStore()
        store.add_detection(_detection(0.5, 0.5, 100), now=100)
        store.add_detection(_detection(0.5, 0.51, 50), now=110)
        (path,) = store.paths
        self.assertEqual([p.timestamp_ms for p in path.points], [100])

    def test_add_point_rejects_non_increasing_timestamp(self) -> None:
        path = BarPath(start_time=0)
        path.add_point(Point(0.5, 0.5, 10))
        with self.assertRaises(ValueError):
            path.add_point(Point(0.5, 0.5, 10))

    def test_short_path_is_evicted_after_grace_period(self) -> None:
        store = PathStore()
        for i in range(10):
            store.add_detection(_detection(0.5, 0.5 + i * 0.005, i * 100), now=i * 100)
        self.assertEqual(len(store), 1)

        # Untouched for 3500ms: not stale yet, but too short for too long.
        self.assertTrue(store.cleanup_due(4400))
        evicted = store.maybe_cleanup(4400)
        self.assertEqual(len(evicted), 1)
        self.assertEqual(len(store), 0)

    def test_cleanup_runs_only_after_interval(self) -> None:
        store = PathStore()
        store.cleanup(1000)
        self.assertFalse(store.cleanup_due(2999))
        self.assertTrue(store.cleanup_due(3000))
        self.assertEqual(store.maybe_cleanup(2500), [])

    def test_stale_path_times_out(self) -> None:
        store = PathStore()
        for i in range(20):
            store.add_detection(_detection(0.5, 0.5, i * 50), now=i * 50)
        last = 19 * 50

        store.cleanup(last + 4000)
        self.assertEqual(len(store), 1)
        store.cleanup(last + 4001)
        self.assertEqual(len(store), 0)

    def test_long_path_is_truncated_to_newest_points(self) -> None:
        store = PathStore()
        for i in range(301):
            store.add_detection(_detection(0.5, 0.5, i * 10), now=i * 10)
        (path,) = store.paths
        self.assertEqual(len(path.points), 301)

        store.cleanup(3000)
        self.assertEqual(len(path.points), 200)
        self.assertEqual(path.points[-1].timestamp_ms, 3000)
        self.assertEqual(path.points[0].timestamp_ms, 1010)

    def test_paths_property_is_a_snapshot(self) -> None:
        store = PathStore()
        store.add_detection(_detection(0.5, 0.5, 0), now=0)
        snapshot = store.paths
        snapshot.clear()
        self.assertEqual(len(store), 1)
        self.assertEqual(store.total_points, 1)

    def test_stable_paths_require_points_and_quiet_period(self) -> None:
        store = PathStore()
        for i in range(15):
            store.add_detection(_detection(0.5, 0.5, i * 10), now=i * 10)
        self.assertEqual(store.stable_paths(140 + 1499), [])
        self.assertEqual(len(store.stable_paths(140 + 1500)), 1)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
