"""
Provides a GUI for the replay simulator with map visualization, playback
controls and live telemetry.
"""

import tkinter as tk
from tkinter import ttk, messagebox, filedialog
import logging
import threading
from typing import Optional, Tuple

import tkintermapview
from PIL import Image, ImageDraw, ImageTk

from .config import ReplayConfig, ConfigError, load_config as read_config, save_config as write_config
from .constants import OSM_ATTRIBUTION
from .frames import DEFAULT_FRAME_INTERVAL_MS, FrameScheduler
from .route_loader import load_route, save_route
from .simulator import ReplaySimulator
from .telemetry import Telemetry, format_telemetry, NOT_AVAILABLE


logger = logging.getLogger(__name__)


class TkFrameScheduler(FrameScheduler):
    """Frame scheduler backed by ``widget.after()``."""

    def __init__(self, widget: tk.Misc, interval_ms: int = DEFAULT_FRAME_INTERVAL_MS):
        self.widget = widget
        self.interval_ms = max(1, int(interval_ms))

    def request_frame(self, callback):
        return self.widget.after(self.interval_ms, callback)

    def cancel_frame(self, handle):
        if handle is None:
            return
        try:
            self.widget.after_cancel(handle)
        except tk.TclError as e:
            # The interpreter is already gone (window closed)
            logger.debug(f"Ignoring frame cancel after teardown: {e}")


class ReplayGUI:

    def __init__(self, config: Optional[ReplayConfig] = None):
        self.config = config or ReplayConfig()

        self.root = tk.Tk()
        self.root.title("Vehicle Replay")
        self.root.geometry(self.config.window_geometry)
        self.root.minsize(640, 480)

        # Initialize simulator on the Tk event loop
        self.scheduler = TkFrameScheduler(self.root, self.config.frame_interval_ms)
        self.simulator = ReplaySimulator(self.scheduler)

        # Map objects
        self.vehicle_marker = None
        self.trail_path = None
        self._trail_length = 0
        self._framed_center: Optional[Tuple[float, float]] = None
        self._last_map_pos: Optional[Tuple[float, float]] = None

        # Setup GUI components
        self.setup_style()
        self.setup_menu()
        self.setup_map()
        self.setup_controls()
        self.setup_status_bar()

        self.car_icon = self.create_car_icon()

        self.simulator.add_listener(self.on_telemetry)
        self.on_telemetry(self.simulator.snapshot())

    def create_car_icon(self):
        """Create the vehicle marker icon."""
        size = 32
        image = Image.new('RGBA', (size, size), (0, 0, 0, 0))  # Transparent background
        draw = ImageDraw.Draw(image)

        # Body
        draw.rounded_rectangle([3, 10, size - 4, 24], radius=4,
                               fill=(59, 130, 246, 255), outline=(30, 64, 175, 255), width=2)
        # Cabin
        draw.rounded_rectangle([9, 4, size - 10, 13], radius=3,
                               fill=(147, 197, 253, 255), outline=(30, 64, 175, 255), width=2)
        # Wheels
        for x in (7, size - 13):
            draw.ellipse([x, 20, x + 7, 27], fill=(31, 41, 55, 255))

        return ImageTk.PhotoImage(image)

    def setup_style(self):
        """Configure GUI styling."""
        style = ttk.Style()
        style.configure('Card.TLabelframe.Label', font=('Arial', 12, 'bold'))
        style.configure('Field.TLabel', font=('Arial', 10, 'bold'))

    def setup_menu(self):
        """Create menu bar."""
        menubar = tk.Menu(self.root)
        self.root.config(menu=menubar)

        # File menu
        file_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="File", menu=file_menu)
        file_menu.add_command(label="Open Route...", command=self.open_route)
        file_menu.add_command(label="Export Route...", command=self.export_route)
        file_menu.add_separator()
        file_menu.add_command(label="Load Configuration...", command=self.load_config)
        file_menu.add_command(label="Save Configuration...", command=self.save_config)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.on_closing)

        # View menu
        view_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="View", menu=view_menu)
        view_menu.add_command(label="Reset Map View", command=self.reset_map_view)
        self.follow_vehicle = tk.BooleanVar(value=self.config.follow_vehicle)
        view_menu.add_checkbutton(label="Follow Vehicle", variable=self.follow_vehicle)

        # Help menu
        help_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="Help", menu=help_menu)
        help_menu.add_command(label="About", command=self.show_about)

    def setup_map(self):
        """Create the map panel."""
        self.map_widget = tkintermapview.TkinterMapView(
            self.root, width=800, height=600, corner_radius=0
        )
        self.map_widget.pack(fill=tk.BOTH, expand=True)
        self.map_widget.set_tile_server(self.config.tile_server, max_zoom=19)
        self.map_widget.set_zoom(self.config.initial_zoom)

    def setup_controls(self):
        """Create the telemetry card overlaid at the bottom of the map."""
        self.card = ttk.LabelFrame(self.root, text="Vehicle Simulation",
                                   style='Card.TLabelframe', padding=10)
        self.card.place(relx=0.5, rely=1.0, y=-40, anchor='s', width=420)

        self.coords_var = tk.StringVar(value=NOT_AVAILABLE)
        self.timestamp_var = tk.StringVar(value=NOT_AVAILABLE)
        self.elapsed_var = tk.StringVar(value="0.0 s")
        self.speed_var = tk.StringVar(value="0.00 m/s")

        rows = [
            ("Current Coords:", self.coords_var),
            ("Timestamp:", self.timestamp_var),
            ("Elapsed Time:", self.elapsed_var),
            ("Speed:", self.speed_var),
        ]
        for row, (label, var) in enumerate(rows):
            ttk.Label(self.card, text=label, style='Field.TLabel').grid(row=row, column=0, sticky=tk.W)
            ttk.Label(self.card, textvariable=var).grid(row=row, column=1, sticky=tk.E)
        self.card.columnconfigure(1, weight=1)

        # Play/Pause and Reset buttons
        button_frame = ttk.Frame(self.card)
        button_frame.grid(row=len(rows), column=0, columnspan=2, pady=(10, 0))

        self.play_button = ttk.Button(button_frame, text="Play", width=10,
                                      command=self.simulator.toggle_play_pause, state=tk.DISABLED)
        self.play_button.pack(side=tk.LEFT, padx=(0, 10))

        self.reset_button = ttk.Button(button_frame, text="Reset", width=10,
                                       command=self.simulator.reset, state=tk.DISABLED)
        self.reset_button.pack(side=tk.LEFT)

    def setup_status_bar(self):
        """Create the status bar."""
        self.status_frame = ttk.Frame(self.root)
        self.status_frame.pack(side=tk.BOTTOM, fill=tk.X, before=self.map_widget)

        self.status_state = tk.StringVar(value="Status: Idle")
        self.status_progress = tk.StringVar(value="Waypoint: 0/0")

        ttk.Label(self.status_frame, textvariable=self.status_state).pack(side=tk.LEFT, padx=10)
        ttk.Separator(self.status_frame, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=5)
        ttk.Label(self.status_frame, textvariable=self.status_progress).pack(side=tk.LEFT, padx=10)
        ttk.Label(self.status_frame, text=OSM_ATTRIBUTION, foreground="gray").pack(side=tk.RIGHT, padx=10)

    def on_telemetry(self, telemetry: Telemetry):
        """Render a telemetry snapshot published by the simulator."""
        fields = format_telemetry(telemetry)
        self.coords_var.set(fields['coordinates'])
        self.timestamp_var.set(fields['timestamp'])
        self.elapsed_var.set(fields['elapsed'])
        self.speed_var.set(fields['speed'])

        # Controls stay disabled until a route is loaded
        button_state = tk.NORMAL if telemetry.controls_enabled else tk.DISABLED
        self.play_button.config(text="Pause" if telemetry.is_playing else "Play", state=button_state)
        self.reset_button.config(state=button_state)

        self.status_state.set(f"Status: {telemetry.state.value.title()}")
        reached = min(telemetry.target_index, telemetry.waypoint_count)
        self.status_progress.set(f"Waypoint: {reached}/{telemetry.waypoint_count}")

        self.update_map(telemetry)

    def update_map(self, telemetry: Telemetry):
        """Move the vehicle marker, redraw the trail and keep the view framed."""
        # Frame the route once per loaded route
        if telemetry.initial_center != self._framed_center:
            self._framed_center = telemetry.initial_center
            if telemetry.initial_center is not None:
                lat, lon = telemetry.initial_center
                self.map_widget.set_position(lat, lon)
                self.map_widget.set_zoom(self.config.initial_zoom)

        position = telemetry.position
        if position is None:
            if self.vehicle_marker is not None:
                self.vehicle_marker.delete()
                self.vehicle_marker = None
            self._last_map_pos = None
        else:
            lat, lon = position.latitude, position.longitude
            if self.vehicle_marker is None:
                self.vehicle_marker = self.map_widget.set_marker(
                    lat, lon, icon=self.car_icon, icon_anchor="s"
                )
            elif self._last_map_pos != (lat, lon):
                self.vehicle_marker.set_position(lat, lon)

            if self.follow_vehicle.get() and self._last_map_pos != (lat, lon):
                self.map_widget.set_position(lat, lon)
            self._last_map_pos = (lat, lon)

        self.update_trail(telemetry.traversed_path)

    def update_trail(self, path):
        """Redraw the traversed path when it grows or is reset."""
        if len(path) == self._trail_length:
            return
        self._trail_length = len(path)

        if len(path) < 2:
            if self.trail_path is not None:
                self.trail_path.delete()
                self.trail_path = None
            return

        if self.trail_path is None:
            self.trail_path = self.map_widget.set_path(
                list(path), color=self.config.path_color, width=self.config.path_width
            )
        else:
            self.trail_path.set_position_list(list(path))

    # Route loading
    def load_route_async(self, source: Optional[str] = None):
        """Fetch the route in the background and hand it to the simulator."""
        self.status_state.set("Status: Loading route...")

        def worker():
            waypoints = load_route(source)
            try:
                self.root.after(0, self.on_route_loaded, waypoints)
            except (RuntimeError, tk.TclError) as e:
                # Window closed while the route was loading
                logger.debug(f"Discarding loaded route: {e}")

        threading.Thread(target=worker, daemon=True).start()

    def on_route_loaded(self, waypoints):
        self.simulator.load(waypoints)
        if not waypoints:
            self.status_state.set("Status: No route data")

    def open_route(self):
        """Load a different route file."""
        filename = filedialog.askopenfilename(
            title="Open Route",
            filetypes=[("JSON files", "*.json"), ("All files", "*.*")]
        )
        if filename:
            self.load_route_async(filename)

    def export_route(self):
        """Export the loaded waypoints to a JSON file."""
        if not self.simulator.has_waypoints:
            messagebox.showwarning("Warning", "No route to export!")
            return

        filename = filedialog.asksaveasfilename(
            title="Export Route",
            defaultextension=".json",
            filetypes=[("JSON files", "*.json"), ("All files", "*.*")]
        )
        if filename:
            try:
                save_route(self.simulator.waypoints, filename)
                messagebox.showinfo("Success", f"Exported {len(self.simulator.waypoints)} waypoints!")
            except OSError as e:
                logger.error(f"Failed to export route: {e}")
                messagebox.showerror("Error", f"Failed to export route: {e}")

    # File operations
    def load_config(self):
        """Load display configuration from file."""
        filename = filedialog.askopenfilename(
            title="Load Configuration",
            filetypes=[("JSON files", "*.json"), ("All files", "*.*")]
        )
        if filename:
            try:
                self.apply_config(read_config(filename))
                messagebox.showinfo("Success", "Configuration loaded successfully!")
            except ConfigError as e:
                logger.error(str(e))
                messagebox.showerror("Error", str(e))

    def save_config(self):
        """Save current configuration to file."""
        filename = filedialog.asksaveasfilename(
            title="Save Configuration",
            defaultextension=".json",
            filetypes=[("JSON files", "*.json"), ("All files", "*.*")]
        )
        if filename:
            try:
                self.config = self.config.apply_overrides(follow_vehicle=self.follow_vehicle.get())
                write_config(self.config, filename)
                messagebox.showinfo("Success", "Configuration saved successfully!")
            except OSError as e:
                logger.error(f"Failed to save configuration: {e}")
                messagebox.showerror("Error", f"Failed to save configuration: {e}")

    def apply_config(self, config: ReplayConfig):
        """Apply display settings. The route source only applies at startup."""
        self.config = config
        self.scheduler.interval_ms = max(1, int(config.frame_interval_ms))
        self.follow_vehicle.set(config.follow_vehicle)
        self.map_widget.set_tile_server(config.tile_server, max_zoom=19)

        # Force the trail to be redrawn with the new style
        if self.trail_path is not None:
            self.trail_path.delete()
            self.trail_path = None
        self._trail_length = 0
        self.update_map(self.simulator.snapshot())

    # Map interaction methods
    def reset_map_view(self):
        """Re-center the map on the start of the route."""
        center = self.simulator.initial_center
        if center is not None:
            self.map_widget.set_position(*center)
            self.map_widget.set_zoom(self.config.initial_zoom)

    def show_about(self):
        """Show about dialog."""
        messagebox.showinfo(
            "About",
            "Vehicle Replay\n\n"
            "Replays a recorded GPS route in real time on an OpenStreetMap view,\n"
            "with the traversed path, current speed and elapsed time."
        )

    def on_closing(self):
        """Handle application closing."""
        self.simulator.shutdown()
        self.root.destroy()

    def run(self):
        """Start the GUI application."""
        self.root.protocol("WM_DELETE_WINDOW", self.on_closing)
        self.load_route_async(self.config.route_source)
        self.root.mainloop()


def main(config: Optional[ReplayConfig] = None):
    """Main entry point for the GUI application."""
    app = ReplayGUI(config)
    app.run()


if __name__ == "__main__":
    main()
