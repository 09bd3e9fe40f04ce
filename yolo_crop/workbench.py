from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from .config import AppConfig
from .crop import crop_and_resize, select_detection
from .errors import DetectionBusyError, NoDetectionError
from .runtime import DetectorSession
from .types import Detection
from .visualize import ClassNames, draw_detections, encode_png, render_canvas

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectResult:
    detections: List[Detection]
    canvas: np.ndarray


class DetectionWorkbench:
    """
    Detect -> crop -> save workflow for one source image at a time.

    Holds the results of the last run (`detections`, `result_png`) so the
    crop and save steps can use them. A new detection run replaces both.
    """

    def __init__(self, session: DetectorSession, cfg: AppConfig = AppConfig(), class_names: Optional[ClassNames] = None):
        self.session = session
        self.cfg = cfg
        self.class_names = class_names
        self.detections: List[Detection] = []
        self.result_png: Optional[bytes] = None
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def reset(self) -> None:
        self.detections = []
        self.result_png = None

    def detect(self, image: np.ndarray) -> DetectResult:
        """
        Run detection and draw the boxes on a canvas.

        Raises:
            DetectionBusyError: another run is in flight.
            InferenceError: a model call failed; previous results are cleared.
        """

        if not self._lock.acquire(blocking=False):
            raise DetectionBusyError("A detection run is already in progress.")
        try:
            self.reset()
            detections = self.session.detect(image, self.cfg.nms_config(), self.cfg.post_config())
            canvas = draw_detections(
                render_canvas(image, self.session.input_size), detections, class_names=self.class_names
            )
            self.detections = detections
            return DetectResult(detections=detections, canvas=canvas)
        finally:
            self._lock.release()

    def crop(self, image: np.ndarray, policy: Optional[str] = None) -> np.ndarray:
        """
        Crop the selected detection out of `image` (the same source image
        passed to `detect`) and keep it as PNG bytes for `save_result`.
        """

        detection = select_detection(self.detections, policy or self.cfg.crop_policy)
        result = crop_and_resize(
            image,
            detection,
            display_size=self.session.input_size,
            out_size=self.cfg.result_size,
        )
        self.result_png = encode_png(result)
        return result

    def save_result(self, path: Union[str, Path]) -> Path:
        if self.result_png is None:
            raise NoDetectionError("Nothing to save. Crop a detection first.")
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(self.result_png)
        logger.info("Wrote %s (%d bytes)", out, len(self.result_png))
        return out
