from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np


@dataclass(frozen=True)
class NMSConfig:
    """
    Settings fed to the NMS network as its `config` input.
    """

    topk: int = 100
    iou_threshold: float = 0.45
    score_threshold: float = 0.2

    def __post_init__(self) -> None:
        if self.topk < 1:
            raise ValueError("topk must be >= 1")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if not 0.0 <= self.score_threshold <= 1.0:
            raise ValueError("score_threshold must be in [0, 1]")

    def as_tensor(self) -> np.ndarray:
        return np.array([self.topk, self.iou_threshold, self.score_threshold], dtype=np.float32)


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Simple NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of boxes to keep, highest score first (at most `cfg.topk`).
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 2]
    y2 = boxes[:, 3]
    areas = (x2 - x1) * (y2 - y1)

    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []

    while order.size > 0 and len(keep) < cfg.topk:
        i = order[0]
        keep.append(int(i))

        xx1 = np.maximum(x1[i], x1[order[1:]])
        yy1 = np.maximum(y1[i], y1[order[1:]])
        xx2 = np.minimum(x2[i], x2[order[1:]])
        yy2 = np.minimum(y2[i], y2[order[1:]])

        w = np.maximum(0.0, xx2 - xx1)
        h = np.maximum(0.0, yy2 - yy1)
        inter = w * h
        union = areas[i] + areas[order[1:]] - inter
        iou = inter / np.maximum(union, 1e-6)

        inds = np.where(iou <= cfg.iou_threshold)[0]
        order = order[inds + 1]

    return np.array(keep, dtype=np.int64)


def _split_raw(output0: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    p = np.asarray(output0)
    if p.ndim == 3:
        if p.shape[0] != 1:
            raise ValueError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
        p = p[0]
    if p.ndim != 2 or p.shape[0] < 5:
        raise ValueError(f"Expected detector output shaped (1, 4 + C, A), got {np.shape(output0)}")
    return p[0:4, :].T, p[4:, :]


def select_rows(output0: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    In-process stand-in for the NMS network.

    Takes raw detector output (1, 4 + C, A), runs per-class NMS over anchors
    whose class score is above `cfg.score_threshold`, and gathers the kept
    anchors as rows (1, N, 4 + C). Rows are ordered by class id, then by
    score (highest first), like ONNX `NonMaxSuppression`.
    """

    boxes_cxcywh, class_scores = _split_raw(output0)
    rows = np.concatenate([boxes_cxcywh, class_scores.T], axis=1)

    cx, cy, w, h = boxes_cxcywh.T
    boxes_xyxy = np.stack([cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2], axis=1)

    kept: List[int] = []
    for cls in range(class_scores.shape[0]):
        scores = class_scores[cls]
        idx = np.where(scores > cfg.score_threshold)[0]
        if idx.size == 0:
            continue
        keep_local = nms(boxes_xyxy[idx], scores[idx], cfg)
        kept.extend(idx[keep_local].tolist())

    if not kept:
        return np.zeros((1, 0, rows.shape[1]), dtype=np.float32)
    return rows[np.array(kept, dtype=np.int64)][None, ...].astype(np.float32)
