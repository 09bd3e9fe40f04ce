import tempfile
import unittest
from pathlib import Path

import cv2
import numpy as np

from yolo_crop.metadata import COCO_CLASS_NAMES, load_class_names
from yolo_crop.types import Detection
from yolo_crop.visualize import _label_origin, class_color, class_name, draw_detections, encode_png, render_canvas


class TestVisualize(unittest.TestCase):
    def test_render_canvas_stretches(self) -> None:
        canvas = render_canvas(np.zeros((600, 300, 4), dtype=np.uint8), (640, 640))
        self.assertEqual(canvas.shape, (640, 640, 3))

    def test_draw_returns_copy(self) -> None:
        canvas = np.zeros((100, 100, 3), dtype=np.uint8)
        det = Detection(label=17, probability=0.9, bounding=(10.0, 40.0, 50.0, 30.0))
        out = draw_detections(canvas, [det], class_names=COCO_CLASS_NAMES)
        self.assertEqual(int(canvas.sum()), 0)
        self.assertGreater(int(out.sum()), 0)

    def test_draw_nothing(self) -> None:
        canvas = np.zeros((50, 50, 3), dtype=np.uint8)
        self.assertTrue(np.array_equal(draw_detections(canvas, []), canvas))

    def test_label_above_box_when_room(self) -> None:
        self.assertEqual(_label_origin((50, 100, 150, 200), (60, 20), (640, 640)), (50, 80))

    def test_label_kept_inside_canvas(self) -> None:
        # Box at the top-right corner: label goes inside the top edge and
        # shifts left instead of running off the canvas.
        self.assertEqual(_label_origin((600, 5, 639, 60), (80, 20), (640, 640)), (560, 5))

    def test_label_drawn_at_right_edge(self) -> None:
        canvas = np.zeros((100, 100, 3), dtype=np.uint8)
        det = Detection(label=0, probability=0.5, bounding=(90.0, 0.0, 9.0, 9.0))
        out = draw_detections(canvas, [det], class_names=COCO_CLASS_NAMES)
        self.assertGreater(int(out[:, :60].sum()), 0)

    def test_box_outside_canvas_skipped(self) -> None:
        canvas = np.zeros((50, 50, 3), dtype=np.uint8)
        det = Detection(label=1, probability=0.5, bounding=(80.0, 80.0, 10.0, 10.0))
        self.assertEqual(int(draw_detections(canvas, [det]).sum()), 0)

    def test_class_color_deterministic(self) -> None:
        self.assertEqual(class_color(17), class_color(17))
        self.assertNotEqual(class_color(0), class_color(1))

    def test_class_name_lookup(self) -> None:
        self.assertEqual(class_name(17, COCO_CLASS_NAMES), "horse")
        self.assertEqual(class_name(3, {3: "car"}), "car")
        self.assertEqual(class_name(99, COCO_CLASS_NAMES), "99")
        self.assertEqual(class_name(5), "5")

    def test_encode_png(self) -> None:
        data = encode_png(np.full((4, 6, 3), 127, dtype=np.uint8))
        decoded = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
        self.assertEqual(decoded.shape, (4, 6, 3))


class TestLoadClassNames(unittest.TestCase):
    def test_reads_names_block(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "metadata.yaml"
            path.write_text(
                "description: test\n"
                "names:\n"
                "  0: person\n"
                "  # comment\n"
                "  17: 'horse'\n"
                "imgsz:\n"
                "  - 640\n",
                encoding="utf-8",
            )
            self.assertEqual(load_class_names(path), {0: "person", 17: "horse"})

    def test_coco_names(self) -> None:
        self.assertEqual(len(COCO_CLASS_NAMES), 80)
        self.assertEqual(COCO_CLASS_NAMES[0], "person")


if __name__ == "__main__":
    unittest.main()
