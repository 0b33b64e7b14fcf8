from __future__ import annotations

import argparse
import logging

import cv2

from shared.config.loader import load_viewer_settings
from shared.contracts.v1.recognition import DisplayMetrics

from apps.viewer.compose import build_session
from apps.viewer.overlay import LatestPreview, render


def main() -> int:
    ap = argparse.ArgumentParser(prog="textlens-viewer")
    ap.add_argument("--profile", help="Config profile name (default: TXL_PROFILE or dev).")
    ap.add_argument("--fake", action="store_true", help="Use the fake recognizer (no Tesseract).")
    ap.add_argument("--screen", action="store_true", help="Grab the screen instead of a camera.")
    ap.add_argument("--quiet", action="store_true", help="Reduce console output.")
    args = ap.parse_args()

    settings = load_viewer_settings(profile=args.profile)
    if args.fake:
        settings.recognition.adapter = "fake"
    if args.screen:
        settings.capture.adapter = "mss"

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    session = build_session(settings)
    preview = LatestPreview()
    session.preview = preview
    viewport = DisplayMetrics(
        viewport_width=settings.viewport_width, viewport_height=settings.viewport_height
    )

    if not args.quiet:
        print(
            f"[viewer] capture={settings.capture.adapter} "
            f"recognition={settings.recognition.adapter} "
            f"viewport={settings.viewport_width}x{settings.viewport_height} "
            "keys: c capture, s switch lens, q quit"
        )

    try:
        session.start()
        while True:
            canvas = render(preview.image(), session.state.snapshot(), viewport)
            cv2.imshow(settings.window_title, canvas)
            key = cv2.waitKey(30) & 0xFF
            if key == ord("q"):
                break
            if key == ord("c"):
                session.capture_photo()
            elif key == ord("s"):
                lens = session.switch_lens()
                if not args.quiet:
                    print(f"[viewer] lens -> {lens}")
    except KeyboardInterrupt:
        if not args.quiet:
            print("\n[viewer] shutting down...")
    finally:
        session.close()
        cv2.destroyAllWindows()
        if not args.quiet:
            print(f"[viewer] stats {session.pipeline.stats()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
