from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

import numpy as np

from .errors import InferenceError
from .letterbox import make_blob, pad_to_square, to_bgr
from .nms import NMSConfig, select_rows
from .postprocess import DetectionPostprocessor, PostConfig
from .types import Detection, ScaleContext

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# I/O names of the exported YOLOv8 model and the companion NMS model.
NET_INPUT = "images"
NET_OUTPUT = "output0"
NMS_DETECTION_INPUT = "detection"
NMS_CONFIG_INPUT = "config"
NMS_OUTPUT = "selected"


class Runner(Protocol):
    def run(self, inputs: Mapping[str, np.ndarray], output_names: Optional[Sequence[str]] = None) -> Dict[str, np.ndarray]:
        ...


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery, used to resolve relative model paths.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root`, or the project root when
      `root` is "auto"/None.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    orig_size: Tuple[int, int]
    scale: ScaleContext


class DetectorSession:
    """
    Ready handle holding the detection network and the NMS network.

    `nms` may be None, in which case NMS runs in-process with `select_rows`.
    Both networks are called strictly in sequence: the NMS step consumes the
    detector's output.
    """

    def __init__(
        self,
        net: Runner,
        nms: Optional[Runner] = None,
        *,
        input_shape: Tuple[int, int, int, int] = (1, 3, 640, 640),
        post_cfg: PostConfig = PostConfig(),
    ):
        if len(input_shape) != 4 or input_shape[0] != 1 or input_shape[1] != 3:
            raise ValueError(f"input_shape must be (1, 3, H, W), got {input_shape}")
        self.net = net
        self.nms = nms
        self.input_shape = tuple(int(d) for d in input_shape)
        self.post = DetectionPostprocessor(post_cfg)

    @property
    def input_size(self) -> Tuple[int, int]:
        """Model input as (width, height)."""
        return self.input_shape[3], self.input_shape[2]

    def preprocess(self, image: np.ndarray) -> PreprocessResult:
        image_bgr = to_bgr(image)
        orig_h, orig_w = image_bgr.shape[:2]
        padded, scale = pad_to_square(image_bgr)
        blob = make_blob(padded, self.input_size)
        return PreprocessResult(blob=blob, orig_size=(orig_w, orig_h), scale=scale)

    def infer(self, blob: np.ndarray, nms_cfg: NMSConfig = NMSConfig()) -> np.ndarray:
        output0 = self._output(self.net.run({NET_INPUT: blob}, [NET_OUTPUT]), NET_OUTPUT)

        if self.nms is None:
            return select_rows(output0, nms_cfg)

        outputs = self.nms.run(
            {NMS_DETECTION_INPUT: output0, NMS_CONFIG_INPUT: nms_cfg.as_tensor()},
            [NMS_OUTPUT],
        )
        return self._output(outputs, NMS_OUTPUT)

    def detect(
        self,
        image: np.ndarray,
        nms_cfg: NMSConfig = NMSConfig(),
        post_cfg: Optional[PostConfig] = None,
    ) -> List[Detection]:
        """
        Preprocess, run both networks and decode. `post_cfg` overrides the
        session's decode settings for this call.
        """
        prep = self.preprocess(image)
        selected = self.infer(prep.blob, nms_cfg)
        post = self.post if post_cfg is None else DetectionPostprocessor(post_cfg)
        detections = post.process(selected, prep.scale)
        logger.info(
            "Detected %d object(s) in %dx%d image", len(detections), prep.orig_size[0], prep.orig_size[1]
        )
        return detections

    def __call__(self, image: np.ndarray, nms_cfg: NMSConfig = NMSConfig()) -> List[Detection]:
        return self.detect(image, nms_cfg)

    @staticmethod
    def _output(outputs: Mapping[str, np.ndarray], name: str) -> np.ndarray:
        if name not in outputs:
            raise InferenceError(f"Model output {name!r} missing (got {sorted(outputs)})")
        return np.asarray(outputs[name])


def load_session(
    model_path: PathLike,
    nms_model_path: Optional[PathLike] = None,
    *,
    root: Optional[PathLike] = "auto",
    input_shape: Tuple[int, int, int, int] = (1, 3, 640, 640),
    post_cfg: PostConfig = PostConfig(),
    onnx_providers: Optional[Sequence[str]] = None,
) -> DetectorSession:
    """
    Create both ONNX Runtime sessions and return a ready DetectorSession.

    Args:
        model_path: YOLOv8 detection model (.onnx); relative paths resolve against project root
        nms_model_path: companion NMS model; None runs NMS in-process
        root: base directory for resolving relative paths ("auto" uses best-effort project root)

    Raises:
        ModelLoadError: a model file is missing or the session cannot be created.
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    ort_cfg = OnnxRuntimeBackendConfig(providers=onnx_providers)
    net = OnnxRuntimeBackend(resolve_path(model_path, root=root), ort_cfg)
    nms = None
    if nms_model_path is not None:
        nms = OnnxRuntimeBackend(resolve_path(nms_model_path, root=root), ort_cfg)
    else:
        logger.info("No NMS model configured; using in-process NMS")

    return DetectorSession(net, nms, input_shape=input_shape, post_cfg=post_cfg)


async def load_session_async(
    model_path: PathLike,
    nms_model_path: Optional[PathLike] = None,
    **kwargs,
) -> DetectorSession:
    """
    Awaitable `load_session`; session creation runs in a worker thread.
    """

    return await asyncio.to_thread(load_session, model_path, nms_model_path, **kwargs)
