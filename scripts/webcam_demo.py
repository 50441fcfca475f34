from __future__ import annotations

import argparse
import asyncio
import os
import sys

import cv2

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from handcascade import RECOMMENDED_HAND_POSE_PROBABILITY_THRESHOLDS, DnnBackend, DnnModel, start_dnn_engine  # noqa: E402
from handcascade.drawing import INDEX_TIP, draw_point, draw_text, draw_track_result  # noqa: E402
from handcascade.logger import setup_logging  # noqa: E402
from handcascade.model_assets import ensure_model_files  # noqa: E402
from handcascade.postproc import compute_approximate_palm_size_px  # noqa: E402
from handcascade.resolution import Resolution, scale_resolution_down  # noqa: E402
from handcascade.smoothing import ExponentialCoordinateAverage  # noqa: E402
from handcascade.track_source import VideoCaptureTrackSource  # noqa: E402

MAX_DISPLAY = Resolution(width=1280, height=720)


def _print_progress(received: int, total: int) -> None:
    if total:
        print(f"\rdownloading models: {100 * received / total:5.1f}%", end="", flush=True)


async def run(args: argparse.Namespace) -> int:
    logger = setup_logging(debug=args.debug)

    if args.box_url or args.lan_url:
        downloads = [(p, u) for p, u in ((args.box_model, args.box_url), (args.lan_model, args.lan_url)) if u]
        ensure_model_files(downloads, _print_progress)
        print()

    size = (args.input_size, args.input_size)
    box = DnnModel(args.box_model, size, backend=args.backend)
    lan = DnnModel(args.lan_model, size, backend=args.backend)

    mirror = not args.no_mirror
    latest = {"result": None}
    cursor = ExponentialCoordinateAverage(0.85)

    def on_result(result) -> None:
        latest["result"] = result

    with VideoCaptureTrackSource(args.camera, args.width, args.height) as src:
        display = scale_resolution_down(Resolution(src.width, src.height), MAX_DISPLAY)
        handle = await start_dnn_engine(
            {"mirror_x": mirror, "padding": args.padding},
            box,
            lan,
            src,
            on_result,
        )
        logger.info("Tracking %dx%d, press q to quit", src.width, src.height)
        try:
            while not handle.task.done():
                await asyncio.sleep(1 / 60)
                frame = src.last_frame
                if frame is None:
                    continue
                frame = cv2.flip(frame, 1) if mirror else frame.copy()

                result = latest["result"]
                status = "no hand"
                if result is not None and result.is_hand_present_prob > RECOMMENDED_HAND_POSE_PROBABILITY_THRESHOLDS["is_hand_present"]:
                    draw_track_result(frame, result)
                    h, w = frame.shape[:2]
                    x, y = cursor.add(result.coordinates[INDEX_TIP])
                    palm_px = compute_approximate_palm_size_px(result.coordinates, w, h)
                    draw_point(frame, (int(x * (w - 1)), int(y * (h - 1))), color=(255, 0, 255), radius=max(4, int(palm_px / 20)))
                    status = f"hand {result.is_hand_present_prob:.2f}"
                else:
                    cursor.reset()

                draw_text(frame, f"{status} | press q to quit", (12, 28))
                frame = cv2.resize(frame, (int(display.width), int(display.height)))
                cv2.imshow("handcascade - webcam demo", frame)
                key = cv2.waitKey(1) & 0xFF
                if key in (ord("q"), 27):
                    break
        finally:
            handle.stop()
            await handle.wait()
            cv2.destroyAllWindows()
    return 0


def main() -> int:
    ap = argparse.ArgumentParser(description="Webcam hand tracking demo.")
    ap.add_argument("--box-model", required=True, help="Path to the box model file")
    ap.add_argument("--lan-model", required=True, help="Path to the landmark model file")
    ap.add_argument("--box-url", default=None, help="Download the box model from this URL if missing")
    ap.add_argument("--lan-url", default=None, help="Download the landmark model from this URL if missing")
    ap.add_argument("--input-size", type=int, default=128, help="Model input resolution (default: 128)")
    ap.add_argument(
        "--backend",
        type=str,
        default=DnnBackend.CPU.value,
        choices=[b.value for b in DnnBackend],
        help="Inference backend (default: CPU)",
    )
    ap.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    ap.add_argument("--width", type=int, default=1280, help="Capture width (best effort)")
    ap.add_argument("--height", type=int, default=720, help="Capture height (best effort)")
    ap.add_argument("--padding", type=float, default=0.05, help="Border padding of result coordinates")
    ap.add_argument(
        "--no-mirror",
        action="store_true",
        help="Disable horizontal mirroring (default is mirrored/selfie mode)",
    )
    ap.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = ap.parse_args()
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
