import tempfile
import threading
import time
import unittest
from pathlib import Path

import cv2
import numpy as np

from yolo_crop.config import AppConfig
from yolo_crop.errors import DetectionBusyError, InferenceError, NoDetectionError
from yolo_crop.postprocess import PostConfig
from yolo_crop.runtime import DetectorSession
from yolo_crop.workbench import DetectionWorkbench


class StaticSession(DetectorSession):
    """DetectorSession whose networks return fixed NMS rows."""

    def __init__(self, selected, error=None, input_shape=(1, 3, 640, 640), post_cfg=PostConfig(class_ids=(1,))):
        super().__init__(net=None, input_shape=input_shape, post_cfg=post_cfg)
        self.selected = np.asarray(selected, dtype=np.float32)
        self.error = error
        self.gate = None

    def infer(self, blob, nms_cfg=None):
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.selected


def _workbench(selected, error=None, **cfg):
    return DetectionWorkbench(StaticSession(selected, error), AppConfig(class_ids=(1,), **cfg))


# 640x640 source, so display space == source pixels.
SOURCE = np.zeros((640, 640, 3), dtype=np.uint8)
ROWS = [[[320, 320, 100, 50, 0.1, 0.8], [100, 100, 40, 40, 0.2, 0.6], [50, 50, 10, 10, 0.9, 0.1]]]


class TestDetectionWorkbench(unittest.TestCase):
    def test_detect_stores_detections_and_draws(self) -> None:
        bench = _workbench(ROWS)
        result = bench.detect(SOURCE)

        self.assertTrue(np.allclose([d.probability for d in result.detections], [0.8, 0.6]))
        self.assertEqual(bench.detections, result.detections)
        self.assertEqual(result.canvas.shape, (640, 640, 3))
        self.assertGreater(int(result.canvas.sum()), 0)

    def test_detect_with_no_matches_draws_nothing(self) -> None:
        bench = _workbench([[[50, 50, 10, 10, 0.9, 0.1]]])
        result = bench.detect(SOURCE)
        self.assertEqual(result.detections, [])
        self.assertEqual(int(result.canvas.sum()), 0)

    def test_failed_run_clears_previous_state(self) -> None:
        bench = _workbench(ROWS)
        bench.detect(SOURCE)
        bench.crop(SOURCE)
        bench.session.error = InferenceError("boom")

        with self.assertRaises(InferenceError):
            bench.detect(SOURCE)
        self.assertEqual(bench.detections, [])
        self.assertIsNone(bench.result_png)
        self.assertFalse(bench.busy)

    def test_overlapping_runs_are_rejected(self) -> None:
        bench = _workbench(ROWS)
        bench.session.gate = threading.Event()
        worker = threading.Thread(target=bench.detect, args=(SOURCE,))
        worker.start()
        try:
            for _ in range(500):
                if bench.busy:
                    break
                time.sleep(0.01)
            self.assertTrue(bench.busy)
            with self.assertRaises(DetectionBusyError):
                bench.detect(SOURCE)
        finally:
            bench.session.gate.set()
            worker.join(timeout=5)
        self.assertFalse(bench.busy)

    def test_crop_uses_best_detection(self) -> None:
        bench = _workbench(ROWS, result_size=(50, 40))
        bench.detect(SOURCE)
        out = bench.crop(SOURCE)
        self.assertEqual(out.shape, (40, 50, 3))
        self.assertIsNotNone(bench.result_png)
        decoded = cv2.imdecode(np.frombuffer(bench.result_png, dtype=np.uint8), cv2.IMREAD_COLOR)
        self.assertEqual(decoded.shape, (40, 50, 3))

    def test_crop_without_detections(self) -> None:
        bench = _workbench(ROWS)
        with self.assertRaises(NoDetectionError):
            bench.crop(SOURCE)

    def test_save_result(self) -> None:
        bench = _workbench(ROWS)
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(NoDetectionError):
                bench.save_result(Path(tmp) / "image.png")
            bench.detect(SOURCE)
            bench.crop(SOURCE, policy="first")
            out = bench.save_result(Path(tmp) / "nested" / "image.png")
            self.assertTrue(out.exists())
            self.assertEqual(out.read_bytes()[:8], b"\x89PNG\r\n\x1a\n")

    def test_crop_maps_from_session_input_size(self) -> None:
        # 320x320 session, default AppConfig (640x640 input_shape).
        session = StaticSession([[[160, 160, 100, 100, 0.9]]], input_shape=(1, 3, 320, 320))
        bench = DetectionWorkbench(session, AppConfig(class_ids=None))
        img = np.zeros((320, 320, 3), dtype=np.uint8)
        img[110:210, 110:210] = 255

        result = bench.detect(img)
        self.assertEqual(result.canvas.shape, (320, 320, 3))
        self.assertTrue(np.allclose(result.detections[0].bounding, [110, 110, 100, 100]))

        out = bench.crop(img)
        self.assertEqual(out.shape, (400, 500, 3))
        self.assertGreater(float(out.mean()), 250.0)

    def test_decode_settings_come_from_app_config(self) -> None:
        rows = [[[50, 50, 10, 10, 0.9, 0.1], [80, 80, 10, 10, 0.2, 0.6]]]
        # Session itself only keeps class 1.
        keep_all = DetectionWorkbench(StaticSession(rows), AppConfig(class_ids=None))
        self.assertEqual([d.label for d in keep_all.detect(SOURCE).detections], [0, 1])

        floor = DetectionWorkbench(StaticSession(rows), AppConfig(class_ids=None, min_score=0.7))
        self.assertEqual([d.label for d in floor.detect(SOURCE).detections], [0])


if __name__ == "__main__":
    unittest.main()
