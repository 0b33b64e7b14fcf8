from __future__ import annotations

import argparse
import logging
import time

from shared.config.loader import load_monitor_settings

from apps.viewer.compose import build_session


def main() -> int:
    ap = argparse.ArgumentParser(prog="textlens-monitor")
    ap.add_argument("--profile", help="Config profile name (default: TXL_PROFILE or dev).")
    ap.add_argument("--fake", action="store_true", help="Use the fake recognizer (no Tesseract).")
    ap.add_argument("--screen", action="store_true", help="Grab the screen instead of a camera.")
    ap.add_argument("--watch", action="store_true", help="Print recognized text until Ctrl+C (no TUI).")
    args = ap.parse_args()

    settings = load_monitor_settings(profile=args.profile)
    if args.fake:
        settings.recognition.adapter = "fake"
    if args.screen:
        settings.capture.adapter = "mss"

    if not args.watch:
        # Launch the TUI app; it starts and closes its own session.
        from apps.monitor.tui import MonitorTUI

        logging.basicConfig(level=logging.WARNING, filename="textlens-monitor.log")
        MonitorTUI(settings=settings, session=build_session(settings)).run()
        return 0

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    session = build_session(settings)
    last_id: int | None = None
    try:
        session.start()
        while True:
            snap = session.state.snapshot()
            if snap.result_frame_id != last_id:
                last_id = snap.result_frame_id
                print(f"[monitor] frame {last_id}: {snap.recognition_result.full_text!r}")
            time.sleep(1.0 / max(settings.refresh_hz, 0.1))
    except KeyboardInterrupt:
        print("\n[monitor] exiting.")
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
