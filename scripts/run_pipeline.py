from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from kinematrack.kinematics.analysis import report_to_dict
from kinematrack.pipeline.runner import PipelineConfig, VideoAnalysisPipeline
from kinematrack.utils.config import deep_merge, load_yaml, resolve_path
from kinematrack.utils.logging import setup_logging


def main() -> None:
    ap = argparse.ArgumentParser(description="Extract kinematics of a coloured ball from a video and fit its acceleration")
    ap.add_argument("--config", default="configs/session.yaml", help="Session YAML")
    ap.add_argument("--video", default=None, help="Video file or device index (overrides source.uri)")
    ap.add_argument("--theta-deg", type=float, default=None, help="Track angle in degrees (overrides session.theta_deg)")
    ap.add_argument("--reference-m", type=float, default=None, help="Real size of the target in metres")
    ap.add_argument("--frame-step", type=float, default=None, help="Sampling step in seconds")
    ap.add_argument("--log-level", default="INFO")
    ap.add_argument("--log-file", default=None)
    args = ap.parse_args()

    base_dir = os.getcwd()
    setup_logging(level=args.log_level, log_file=args.log_file)

    cfg = load_yaml(resolve_path(args.config, base_dir))
    overrides: dict = {"session": {}, "source": {}}
    if args.video is not None:
        overrides["source"]["uri"] = args.video
    if args.theta_deg is not None:
        overrides["session"]["theta_deg"] = args.theta_deg
    if args.reference_m is not None:
        overrides["session"]["reference_dimension_m"] = args.reference_m
    if args.frame_step is not None:
        overrides["session"]["frame_step_s"] = args.frame_step
    cfg = deep_merge(cfg, overrides)

    pipeline = VideoAnalysisPipeline(PipelineConfig.from_dict(cfg, base_dir=base_dir))
    report, _ = pipeline.run()

    for k, v in report_to_dict(report).items():
        print(f"{k}={v}")


if __name__ == "__main__":
    main()
