import contextlib
import io
import tempfile
import unittest
from pathlib import Path

from barline import cli
from barline.geometry import BoundingBox, Detection
from barline.io.detections import save_detections
from barline.io.report import read_rep_rows


def _squat_log(count: int = 20, span_ms: int = 2000):
    half = count // 2
    down = [0.2 + 0.6 * i / (half - 1) for i in range(half)]
    ys = down + list(reversed(down))
    return [
        Detection(
            bbox=BoundingBox(0.48, y - 0.02, 0.52, y + 0.02),
            timestamp_ms=round(i * span_ms / (count - 1)),
        )
        for i, y in enumerate(ys)
    ]


class ReplayCommandTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.root = Path(self.tmp.name)

    def _run(self, *argv: str):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = cli.main(list(argv))
        return code, out.getvalue()

    def test_replay_counts_rep_and_writes_report(self) -> None:
        log_file = save_detections(self.root / "squat.jsonl", _squat_log())
        reports = self.root / "reports"

        code, output = self._run(
            "replay",
            str(log_file),
            "--exercise",
            "squat",
            "--line-height",
            "400",
            "--range-of-motion",
            "1200",
            "--report-dir",
            str(reports),
        )

        self.assertEqual(code, 0)
        self.assertIn("Rep #1 Analysis:", output)
        self.assertIn("Total reps: 1", output)
        (report_file,) = reports.glob("PowerLifting_Squat_OverlayLine_*.csv")
        self.assertIn(f"Report: {report_file}", output)
        rows = read_rep_rows(report_file)
        self.assertEqual([row["Rep_Number"] for row in rows], ["1"])

    def test_wrong_exercise_shape_counts_nothing(self) -> None:
        log_file = save_detections(self.root / "squat.jsonl", _squat_log())
        code, output = self._run(
            "replay", str(log_file), "--exercise", "bench_press", "--range-of-motion", "1200"
        )
        self.assertEqual(code, 0)
        self.assertIn("Total reps: 0", output)

    def test_no_report_without_reps(self) -> None:
        log_file = save_detections(self.root / "squat.jsonl", _squat_log())
        code, _ = self._run(
            "replay", str(log_file), "--exercise", "bench_press", "--report-dir", str(self.root / "out")
        )
        self.assertEqual(code, 1)
        self.assertFalse((self.root / "out").exists())

    def test_invalid_settings_fail_cleanly(self) -> None:
        log_file = save_detections(self.root / "squat.jsonl", _squat_log())
        for flag, value in (("--canvas-height", "0"), ("--max-paths", "0"), ("--line-height", "nan")):
            with self.subTest(flag=flag):
                with self.assertLogs("barline", level="ERROR"):
                    code, _ = self._run("replay", str(log_file), flag, value)
                self.assertEqual(code, 1)

    def test_empty_log_fails(self) -> None:
        log_file = self.root / "empty.jsonl"
        log_file.write_text("")
        code, _ = self._run("replay", str(log_file))
        self.assertEqual(code, 1)

    def test_missing_log_fails(self) -> None:
        code, _ = self._run("replay", str(self.root / "missing.jsonl"))
        self.assertEqual(code, 1)

    def test_malformed_log_fails(self) -> None:
        log_file = self.root / "bad.jsonl"
        log_file.write_text("{not json}\n")
        code, _ = self._run("replay", str(log_file))
        self.assertEqual(code, 1)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
