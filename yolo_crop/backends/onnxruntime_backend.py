from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import onnxruntime as ort

from ..errors import InferenceError, ModelLoadError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    """

    providers: Optional[Sequence[str]] = None


class OnnxRuntimeBackend:
    """
    One ONNX Runtime session with named inputs and outputs.

    Used for both the detection network (images -> output0) and the NMS
    network (detection, config -> selected).
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise ModelLoadError(f"Model file not found: {self.model_path}")

        providers = list(cfg.providers) if cfg.providers is not None else None
        try:
            self.session = ort.InferenceSession(
                str(self.model_path), sess_options=ort.SessionOptions(), providers=providers
            )
        except Exception as exc:
            raise ModelLoadError(f"Failed to create ONNX Runtime session for {self.model_path}: {exc}") from exc

        logger.info("Loaded %s (providers: %s)", self.model_path.name, ", ".join(self.providers_in_use))

    @property
    def input_names(self) -> Tuple[str, ...]:
        return tuple(i.name for i in self.session.get_inputs())

    @property
    def output_names(self) -> Tuple[str, ...]:
        return tuple(o.name for o in self.session.get_outputs())

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(ort.get_available_providers())

    def run(self, inputs: Mapping[str, np.ndarray], output_names: Optional[Sequence[str]] = None) -> Dict[str, np.ndarray]:
        names = list(output_names) if output_names is not None else list(self.output_names)
        try:
            outputs = self.session.run(names, dict(inputs))
        except Exception as exc:
            raise InferenceError(f"Inference failed for {self.model_path.name}: {exc}") from exc
        return dict(zip(names, outputs))
