from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from rich.text import Text
from shared.config.loader import load_monitor_settings
from shared.contracts.v1.recognition import DisplayMetrics, Rect
from textual.app import App, ComposeResult
from textual.widgets import DataTable, Footer, Header, Static

from apps.monitor.settings import MonitorSettings
from apps.viewer.compose import build_session
from domain.overlay import CameraSession, PublishedState, map_rect


def _fmt_rect(r: Rect | None) -> str:
    if r is None:
        return "-"
    return f"({r.left:.0f},{r.top:.0f})-({r.right:.0f},{r.bottom:.0f})"


@dataclass
class FragmentRow:
    index: int
    text: str
    frame_box: Rect | None
    view_box: Rect | None

    @property
    def area(self) -> float:
        b = self.frame_box
        return b.width * b.height if b is not None else 0.0


def rows_for(snap: PublishedState, viewport: DisplayMetrics) -> list[FragmentRow]:
    geom = snap.result_geometry
    rows: list[FragmentRow] = []
    for i, frag in enumerate(snap.recognition_result.fragments):
        box = frag.bounding_box
        view = None
        # mapping is gated on a non-empty frame
        if box is not None and geom is not None and not geom.is_empty():
            view = map_rect(box, geom, viewport)
        rows.append(FragmentRow(index=i, text=frag.text, frame_box=box, view_box=view))
    return rows


class MonitorTUI(App):
    CSS_PATH = None
    BINDINGS = [
        ("q", "quit", "Quit"),
        ("c", "capture", "Capture"),
        ("s", "switch", "Switch lens"),
        ("o", "sort", "Sort"),
        ("?", "help", "Help"),
    ]

    def __init__(
        self, settings: MonitorSettings | None = None, session: CameraSession | None = None
    ) -> None:
        super().__init__()
        self.settings = settings or load_monitor_settings()
        self.session = session or build_session(self.settings)
        self.viewport = DisplayMetrics(
            viewport_width=self.settings.viewport_width,
            viewport_height=self.settings.viewport_height,
        )
        self._table: DataTable | None = None
        self._status: Static | None = None
        self._text: Static | None = None
        self._unsubscribe = None
        self._last_update: datetime | None = None
        self._sort_mode: str = self.settings.sort_mode  # reading | text | size

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static(
            f"[b]capture[/b]= {self.settings.capture.adapter} • "
            f"[b]ocr[/b]= {self.settings.recognition.adapter} • "
            f"viewport {self.settings.viewport_width}x{self.settings.viewport_height}"
        )
        table = DataTable(zebra_stripes=True)
        table.add_columns("#", "Text", "Frame box", "Viewport box")
        self._table = table
        self._text = Static("")
        self._status = Static("")
        yield table
        yield self._text
        yield self._status
        yield Footer()

    def on_mount(self) -> None:
        self._unsubscribe = self.session.state.subscribe(self._on_state)
        self.session.start()
        self.set_interval(1.0 / max(self.settings.refresh_hz, 0.1), self._refresh_table)

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self.session.close()

    def _on_state(self, snap: PublishedState) -> None:
        # called from the analysis threads; only remember the latest
        self._last_update = datetime.now(UTC)

    # ----- Actions (key bindings) -----

    def action_quit(self) -> None:
        self.exit()

    def action_capture(self) -> None:
        try:
            self.session.capture_photo()
            self.notify("Capturing…", severity="information")
        except Exception as ex:
            self.notify(f"Capture failed: {ex!r}", severity="error")

    def action_switch(self) -> None:
        lens = self.session.switch_lens()
        self.notify(f"Lens: {lens}", severity="information")

    def action_sort(self) -> None:
        self._sort_mode = {"reading": "text", "text": "size", "size": "reading"}[self._sort_mode]
        self.notify(f"Sort: {self._sort_mode}", severity="information")
        self._refresh_table()

    def action_help(self) -> None:
        self.notify(
            "Keys: q quit • c capture • s switch lens • o sort • ? help\n"
            "Sort cycles: reading order → text → box size\n"
            "Fragments without a box show '-' and are not drawn.",
            severity="information",
        )

    # ----- Table rendering -----

    def _refresh_table(self) -> None:
        snap = self.session.state.snapshot()
        if not self._table:
            return
        self._table.clear()
        for row in self._sorted_rows(rows_for(snap, self.viewport)):
            text_cell = Text(row.text, style="" if row.frame_box is not None else "dim")
            self._table.add_row(
                str(row.index), text_cell, _fmt_rect(row.frame_box), _fmt_rect(row.view_box)
            )
        if self._text:
            self._text.update(snap.recognition_result.full_text or "[dim]no text[/dim]")
        if self._status:
            self._status.update(self._status_text(snap))

    def _sorted_rows(self, rows: list[FragmentRow]) -> list[FragmentRow]:
        items = list(rows)
        if self._sort_mode == "text":
            items.sort(key=lambda r: r.text.lower())
        elif self._sort_mode == "size":
            items.sort(key=lambda r: r.area, reverse=True)
        return items

    def _status_text(self, snap: PublishedState) -> str:
        frame = f"{snap.frame_width}x{snap.frame_height}" if snap.has_frame else "—"
        last_ts = self._last_update.isoformat(timespec="seconds") if self._last_update else "—"
        stats = self.session.pipeline.stats()
        return (
            f"Frame: {frame} rot={snap.rotation_degrees} • Lens: {snap.lens}"
            + f" • Fragments: {len(snap.recognition_result.fragments)}"
            + f" • Accepted/dropped: {stats['accepted']}/{stats['dropped']}"
            + f" • FPS: {self.session.source.fps():.0f}"
            + f" • Last update: {last_ts}"
            + f" • Photo: {snap.capture_uri or '—'}"
            + f" • Sort: {self._sort_mode}"
        )
