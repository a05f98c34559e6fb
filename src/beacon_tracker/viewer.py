"""
Tkinter window that draws tracked devices over the floorplan.
"""

from __future__ import annotations

import argparse
import io
import queue
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, ttk
from typing import Optional, Tuple

from PIL import Image, ImageTk

from .commands import CommandSurface
from .config import NETWORK, RECORDING, SOURCE, VIEWER
from .models import DeviceRecord, FloorplanDescriptor, TrackingState
from .simulator import SimulatedSource
from .source import PositioningSource
from .udp_source import UDPSource

MIN_DISPLAY_QUALITY = 50  # Tags with a weaker fix keep their previous marker
MIN_ZOOM = 10.0
MAX_ZOOM = 150.0


def world_to_canvas(
    x: float, y: float, zoom: float, center: Tuple[float, float]
) -> Tuple[int, int]:
    """Convert meters to canvas pixels (canvas Y grows downwards)."""
    cx, cy = center
    return int(cx + x * zoom), int(cy - y * zoom)


class TrackerWindow:
    """Main application window."""

    def __init__(self, root: tk.Tk, commands: CommandSurface):
        self.root = root
        self.root.title("Beacon Tracker")
        self.root.geometry(f"{VIEWER['canvas_width']}x{VIEWER['canvas_height'] + 200}")

        self.commands = commands
        self.log_queue: queue.Queue[str] = queue.Queue()
        self.commands.subscribe(self.log_queue.put)

        self.plan: Optional[FloorplanDescriptor] = None
        self.plan_image: Optional[Image.Image] = None
        self.plan_photo: Optional[ImageTk.PhotoImage] = None
        self.zoom = VIEWER["default_scale_pixels_per_m"]
        self.shown: dict[int, DeviceRecord] = {}

        self._create_ui()
        self.root.after(VIEWER["refresh_ms"], self._update_loop)
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

    def _create_ui(self):
        main_frame = ttk.Frame(self.root)
        main_frame.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)

        self.canvas = tk.Canvas(
            main_frame,
            width=VIEWER["canvas_width"],
            height=VIEWER["canvas_height"],
            bg="white",
        )
        self.canvas.pack(fill=tk.BOTH, expand=True)
        self.canvas.bind("<MouseWheel>", self._on_wheel)
        self.canvas.bind("<Button-4>", lambda e: self._zoom_by(1.1))
        self.canvas.bind("<Button-5>", lambda e: self._zoom_by(1 / 1.1))

        ctrl_frame = ttk.Frame(main_frame)
        ctrl_frame.pack(fill=tk.X, pady=5)

        ttk.Button(ctrl_frame, text="Start", command=self.commands.start_tracking).pack(
            side=tk.LEFT, padx=5
        )
        ttk.Button(ctrl_frame, text="Load map...", command=self._load_map).pack(
            side=tk.LEFT, padx=5
        )
        self.record_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(
            ctrl_frame, text="Record", variable=self.record_var, command=self._toggle_record
        ).pack(side=tk.LEFT, padx=5)

        self.status_var = tk.StringVar(value="Tracking: not started")
        self.status_label = ttk.Label(ctrl_frame, textvariable=self.status_var, foreground="orange")
        self.status_label.pack(side=tk.RIGHT, padx=5)

        log_frame = ttk.LabelFrame(main_frame, text="Log", padding=3)
        log_frame.pack(fill=tk.X)
        self.log_text = tk.Text(log_frame, height=6, state=tk.DISABLED)
        self.log_text.pack(fill=tk.X)

    def load_map(self, path: str | Path) -> None:
        devices, plan = self.commands.load_configuration(path)
        if plan is None:
            return
        self.plan = plan
        self.zoom = plan.scale_pixels_per_meter
        self.shown = {device.address: device for device in devices}
        try:
            self.plan_image = Image.open(io.BytesIO(plan.image_bytes))
            self.plan_image.load()
        except OSError as e:
            self.plan_image = None
            self.commands.emit_log(f"failed to decode floorplan .{plan.image_extension.lower()}: {e}")
        self._rescale_plan()
        self.commands.start_tracking()

    def _load_map(self):
        path = filedialog.askopenfilename(
            title="Open map", filetypes=[("Map files", "*.ini"), ("All files", "*.*")]
        )
        if path:
            self.load_map(path)

    def _toggle_record(self):
        if self.record_var.get():
            if not self.commands.begin_recording():
                self.record_var.set(False)
        else:
            self.commands.end_recording()

    def _on_wheel(self, event):
        self._zoom_by(1.1 if event.delta > 0 else 1 / 1.1)

    def _zoom_by(self, factor: float):
        self.zoom = max(min(self.zoom * factor, MAX_ZOOM), MIN_ZOOM)
        self._rescale_plan()

    def _rescale_plan(self):
        if self.plan is None or self.plan_image is None:
            self.plan_photo = None
            return
        ratio = self.zoom / self.plan.scale_pixels_per_meter
        width = max(1, int(self.plan_image.width * ratio))
        height = max(1, int(self.plan_image.height * ratio))
        resized = self.plan_image.resize((width, height), Image.Resampling.LANCZOS)
        self.plan_photo = ImageTk.PhotoImage(resized)

    def _center(self) -> Tuple[float, float]:
        return self.canvas.winfo_width() / 2, self.canvas.winfo_height() / 2

    def _update_loop(self):
        try:
            for device in self.commands.read_devices():
                previous = self.shown.get(device.address)
                if device.is_mobile_tag and device.quality < MIN_DISPLAY_QUALITY and previous:
                    continue
                self.shown[device.address] = device
            self._drain_log()
            self._update_status()
            self._draw()
        except tk.TclError as e:
            print(f"[Viewer] Update error: {e}")

        self.root.after(VIEWER["refresh_ms"], self._update_loop)

    def _drain_log(self):
        while True:
            try:
                message = self.log_queue.get_nowait()
            except queue.Empty:
                break
            self.log_text.configure(state=tk.NORMAL)
            self.log_text.insert(tk.END, message + "\n")
            self.log_text.see(tk.END)
            self.log_text.configure(state=tk.DISABLED)

    def _update_status(self):
        state = self.commands.tracking_status()
        if state is TrackingState.RUNNING:
            self.status_var.set("Tracking: running")
            self.status_label.configure(foreground="green")
        elif state is TrackingState.HALTED:
            self.status_var.set(f"Tracking: HALTED ({self.commands.halt_reason})")
            self.status_label.configure(foreground="red")

    def _draw(self):
        self.canvas.delete("all")
        center = self._center()

        if self.plan is not None and self.plan_photo is not None:
            left, top = world_to_canvas(self.plan.origin_x, self.plan.origin_y, self.zoom, center)
            self.canvas.create_image(left, top, image=self.plan_photo, anchor=tk.NW)

        for device in self.shown.values():
            x, y = world_to_canvas(device.x, device.y, self.zoom, center)
            color = "red" if device.is_mobile_tag else "blue"
            self.canvas.create_oval(x - 6, y - 6, x + 6, y + 6, fill=color, outline="black")
            label = str(device.address)
            if device.is_mobile_tag:
                label = f"x: {device.x:.2f}\ny: {device.y:.2f}\nq: {device.quality}"
            self.canvas.create_text(x, y - 12, text=label, anchor=tk.S, font=("Arial", 9))

    def _on_close(self):
        self.commands.end_recording()
        self.root.destroy()


def build_source(kind: str) -> PositioningSource:
    if kind == "udp":
        return UDPSource()
    return SimulatedSource()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show live beacon and tag positions.")
    parser.add_argument(
        "--source",
        choices=("sim", "udp"),
        default="sim",
        help="Positioning source (simulator or UDP feed)",
    )
    parser.add_argument(
        "--channel",
        default=None,
        help="Channel passed to the source (UDP port for --source udp)",
    )
    parser.add_argument("--map", type=Path, default=None, help="Deployment INI file to load")
    parser.add_argument(
        "--log-path", type=Path, default=Path(RECORDING["path"]), help="CSV recording file"
    )
    parser.add_argument("--start", action="store_true", help="Start tracking immediately")
    return parser


def main():
    """Main entry point."""
    args = build_arg_parser().parse_args()

    channel = args.channel
    if channel is None:
        channel = NETWORK["port"] if args.source == "udp" else SOURCE["channel"]

    commands = CommandSurface(build_source(args.source), log_path=args.log_path, channel=channel)

    root = tk.Tk()
    window = TrackerWindow(root, commands)
    if args.map is not None:
        window.load_map(args.map)
    if args.start:
        commands.start_tracking()
    root.mainloop()


if __name__ == "__main__":
    main()
