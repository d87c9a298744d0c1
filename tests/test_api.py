import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from api.app import create_app

WIDE_SQUAT = {
    "line_height_dp": 400.0,
    "range_of_motion": 1200.0,
    "canvas_height": 1920.0,
    "exercise": "squat",
    "tempo": "moderate",
}


def _squat_detections(count: int = 20, span_ms: int = 2000):
    half = count // 2
    down = [0.2 + 0.6 * i / (half - 1) for i in range(half)]
    ys = down + list(reversed(down))
    for i, y in enumerate(ys):
        ts = round(i * span_ms / (count - 1))
        yield {
            "bbox": {"left": 0.48, "top": y - 0.02, "right": 0.52, "bottom": y + 0.02},
            "timestamp_ms": ts,
            "now": ts,
        }


class SessionApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.reports_dir = Path(self.tmp.name) / "reports"
        self.client = TestClient(create_app(reports_dir=self.reports_dir))
        response = self.client.post("/sessions")
        self.assertEqual(response.status_code, 201)
        self.session_id = response.json()["session_id"]
        self.base = f"/sessions/{self.session_id}"

    def _ingest_squat(self) -> None:
        self.assertEqual(self.client.post(f"{self.base}/settings", json=WIDE_SQUAT).status_code, 204)
        for payload in _squat_detections():
            response = self.client.post(f"{self.base}/detections", json=payload)
            self.assertEqual(response.status_code, 200)

    def test_full_rep_flow(self) -> None:
        self._ingest_squat()

        paths = self.client.get(f"{self.base}/paths").json()
        self.assertEqual(len(paths), 1)
        self.assertEqual(len(paths[0]["points"]), 20)

        promoted = self.client.post(f"{self.base}/tick", json={"now": 3500}).json()
        self.assertEqual([rep["rep_number"] for rep in promoted], [1])
        self.assertAlmostEqual(promoted[0]["duration"], 2.0, places=2)

        reps = self.client.get(f"{self.base}/reps").json()
        self.assertEqual(len(reps), 1)
        self.assertEqual(reps[0]["exercise"], "Squat")
        self.assertIn(reps[0]["grade"], {"A", "B", "C", "D", "F"})
        self.assertTrue(reps[0]["insights"])

        stats = self.client.get(f"{self.base}/stats").json()
        self.assertEqual(stats["total_reps"], 1)
        self.assertEqual(stats["active_paths"], 0)
        self.assertEqual(stats["total_points"], 0)

        report = self.client.post(f"{self.base}/report", json={}).json()
        self.assertEqual(report["message"], "Report generated")
        location = Path(report["location"])
        self.assertTrue(location.exists())
        self.assertEqual(location.parent, self.reports_dir)

    def test_detections_without_now_use_their_timestamps(self) -> None:
        self.assertEqual(self.client.post(f"{self.base}/settings", json=WIDE_SQUAT).status_code, 204)
        for payload in _squat_detections():
            del payload["now"]
            self.assertEqual(self.client.post(f"{self.base}/detections", json=payload).status_code, 200)

        paths = self.client.get(f"{self.base}/paths").json()
        self.assertEqual([len(path["points"]) for path in paths], [20])

        promoted = self.client.post(f"{self.base}/tick", json={"now": 3500}).json()
        self.assertEqual([rep["rep_number"] for rep in promoted], [1])

    def test_report_without_reps(self) -> None:
        report = self.client.post(f"{self.base}/report", json={}).json()
        self.assertEqual(report, {"message": "No report written", "location": None})

    def test_clear_drops_paths_and_reps(self) -> None:
        self._ingest_squat()
        self.client.post(f"{self.base}/tick", json={"now": 3500})

        self.assertEqual(self.client.post(f"{self.base}/clear").status_code, 204)

        self.assertEqual(self.client.get(f"{self.base}/paths").json(), [])
        self.assertEqual(self.client.get(f"{self.base}/reps").json(), [])

    def test_invalid_settings_are_rejected(self) -> None:
        response = self.client.post(f"{self.base}/settings", json={**WIDE_SQUAT, "canvas_height": 0})
        self.assertEqual(response.status_code, 422)
        response = self.client.post(f"{self.base}/settings", json={**WIDE_SQUAT, "exercise": "curl"})
        self.assertEqual(response.status_code, 422)

    def test_invalid_bbox_is_rejected(self) -> None:
        payload = {"bbox": {"left": 0.6, "top": 0.2, "right": 0.4, "bottom": 0.3}, "timestamp_ms": 0}
        self.assertEqual(self.client.post(f"{self.base}/detections", json=payload).status_code, 422)
        payload["bbox"] = {"left": 0.4, "top": 0.2, "right": 1.4, "bottom": 0.3}
        self.assertEqual(self.client.post(f"{self.base}/detections", json=payload).status_code, 422)

    def test_unknown_and_deleted_sessions(self) -> None:
        self.assertEqual(self.client.get("/sessions/nope/stats").status_code, 404)
        self.assertEqual(self.client.delete(self.base).status_code, 204)
        self.assertEqual(self.client.get(f"{self.base}/stats").status_code, 404)

    def test_sessions_are_independent(self) -> None:
        self._ingest_squat()
        other = self.client.post("/sessions").json()["session_id"]
        self.assertEqual(self.client.get(f"/sessions/{other}/paths").json(), [])
        self.assertEqual(len(self.client.get(f"{self.base}/paths").json()), 1)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
