import argparse
import dataclasses
import logging
import sys
from pathlib import Path

import cv2

from yolo_crop import (
    COCO_CLASS_NAMES,
    AppConfig,
    DetectionWorkbench,
    YoloCropError,
    load_app_config,
    load_class_names,
    load_session,
)
from yolo_crop.visualize import class_name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Detect objects with YOLOv8 + NMS model, draw boxes, crop one detection.")
    parser.add_argument("--image", required=True, help="Path to an input image.")
    parser.add_argument("--config", default=None, help="Optional JSON config (see AppConfig); flags override it.")
    parser.add_argument("--model", default=None, help="Path to the YOLOv8 .onnx model.")
    parser.add_argument("--nms-model", default=None, help="Path to the NMS .onnx model.")
    parser.add_argument("--no-nms-model", action="store_true", help="Run NMS in-process instead of via the NMS model.")
    parser.add_argument("--metadata", default=None, help="Class names file (names: mapping). Defaults to COCO names.")
    parser.add_argument(
        "--class-id",
        type=int,
        action="append",
        default=None,
        help="Class id to keep (repeatable). Use -1 to keep every class.",
    )
    parser.add_argument("--topk", type=int, default=None, help="Max boxes per class kept by NMS.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument("--conf", type=float, default=None, help="Score threshold for NMS.")
    parser.add_argument("--policy", choices=("best", "first"), default=None, help="Which detection to crop.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--out", default=None, help="Where to save the canvas with boxes drawn.")
    parser.add_argument("--crop-out", default=None, help="Where to save the cropped + resized PNG.")
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...).")
    return parser


def resolve_config(args: argparse.Namespace) -> AppConfig:
    cfg = load_app_config(Path(args.config)) if args.config else AppConfig()

    overrides = {}
    if args.model:
        overrides["model_path"] = args.model
    if args.nms_model:
        overrides["nms_model_path"] = args.nms_model
    if args.no_nms_model:
        overrides["nms_model_path"] = None
    if args.metadata:
        overrides["metadata_path"] = args.metadata
    if args.class_id:
        overrides["class_ids"] = None if -1 in args.class_id else tuple(args.class_id)
    if args.topk is not None:
        overrides["topk"] = args.topk
    if args.iou is not None:
        overrides["iou_threshold"] = args.iou
    if args.conf is not None:
        overrides["score_threshold"] = args.conf
    if args.policy:
        overrides["crop_policy"] = args.policy
    if args.onnx_providers:
        overrides["onnx_providers"] = tuple(p.strip() for p in str(args.onnx_providers).split(",") if p.strip())

    return dataclasses.replace(cfg, **overrides) if overrides else cfg


def main() -> int:
    args = build_parser().parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    cfg = resolve_config(args)
    class_names = load_class_names(cfg.metadata_path) if cfg.metadata_path else COCO_CLASS_NAMES

    img = cv2.imread(args.image)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {args.image}")

    try:
        session = load_session(
            cfg.model_path,
            cfg.nms_model_path,
            input_shape=cfg.input_shape,
            post_cfg=cfg.post_config(),
            onnx_providers=cfg.onnx_providers,
        )
        bench = DetectionWorkbench(session, cfg, class_names=class_names)
        result = bench.detect(img)
    except YoloCropError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    for det in result.detections:
        print(class_name(det.label, class_names), f"{det.probability:.4f}", [round(v, 1) for v in det.bounding])

    if args.out:
        ok = cv2.imwrite(args.out, result.canvas)
        if not ok:
            raise RuntimeError(f"Failed to write output image: {args.out}")

    if args.crop_out:
        try:
            bench.crop(img)
            bench.save_result(args.crop_out)
        except YoloCropError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1

    if args.show:
        cv2.imshow("detections", result.canvas)
        cv2.waitKey(0)
        cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
