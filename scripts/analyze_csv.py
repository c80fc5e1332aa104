from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from kinematrack.kinematics.analysis import AnalysisConfig, analyze, report_to_dict
from kinematrack.output.csv_io import read_samples_csv_with_layout


def main() -> None:
    ap = argparse.ArgumentParser(description="Re-run the kinematic fits on an exported t,x,y,vx,vy or t,x,y,v CSV")
    ap.add_argument("--csv", required=True, help="Samples CSV written by run_pipeline.py")
    ap.add_argument("--theta-deg", type=float, required=True)
    ap.add_argument("--motion-axis", default="speed", choices=["speed", "x", "y"])
    ap.add_argument("--fit-mode", default="origin", choices=["origin", "free"])
    ap.add_argument("--velocity-source", default="filter", choices=["filter", "difference"])
    args = ap.parse_args()

    layout, samples = read_samples_csv_with_layout(args.csv)
    if not samples:
        raise RuntimeError(f"No samples found in {args.csv}")
    if layout == "speed" and args.motion_axis != "speed" and args.velocity_source == "filter":
        ap.error("a t,x,y,v export only has speed magnitudes; use --motion-axis speed or --velocity-source difference")

    cfg = AnalysisConfig.from_dict(
        {"motion_axis": args.motion_axis, "fit_mode": args.fit_mode, "velocity_source": args.velocity_source}
    )
    report = analyze(samples, theta_deg=args.theta_deg, cfg=cfg)
    for k, v in report_to_dict(report).items():
        print(f"{k}={v}")


if __name__ == "__main__":
    main()
