"""
Tkinter-based GUI that starts, stops and queries the weather server.
"""

from __future__ import annotations

import logging
import tkinter as tk
from tkinter import ttk
from typing import Any, Callable, Dict, List, Optional

from fastmcp.exceptions import ToolError

from weather_server.catalog import UNITS, CityNotFound, WeatherRecord

from .errors import ServiceError
from .shell import ServerStatus, WeatherBackend, WeatherShell, failure_message

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    ServerStatus.RUNNING: "running",
    ServerStatus.STARTING: "starting...",
    ServerStatus.STOPPING: "stopping...",
    ServerStatus.STOPPED: "stopped",
}


class WeatherApp:
    def __init__(
        self, root: tk.Tk, backend: WeatherBackend, *, autostart: bool = False
    ) -> None:
        self.root = root
        self.root.title("MCP Weather Client")
        self.root.geometry("640x520")

        self.shell = WeatherShell(backend)

        self.server_status_var = tk.StringVar(value=STATUS_LABELS[ServerStatus.STOPPED])
        self.city_var = tk.StringVar()
        self.prompt_var = tk.StringVar(value="")
        self.error_var = tk.StringVar(value="")
        self.status_var = tk.StringVar(value=f"Transport: {backend.name}")

        self.weather_vars: Dict[str, tk.StringVar] = {
            "temperature": tk.StringVar(value="--"),
            "condition": tk.StringVar(value="--"),
            "humidity": tk.StringVar(value="--"),
            "wind": tk.StringVar(value="--"),
        }

        self.convert_value_var = tk.StringVar(value="32")
        self.convert_from_var = tk.StringVar(value="fahrenheit")
        self.convert_to_var = tk.StringVar(value="celsius")
        self.convert_result_var = tk.StringVar(value="--")

        self._busy = False

        self._build_ui()
        self._bind_events()
        self._refresh_controls()
        if autostart:
            self.root.after(0, self._on_start)

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------

    def _build_ui(self) -> None:
        self.root.columnconfigure(0, weight=1)

        server_frame = ttk.LabelFrame(self.root, text="Server")
        server_frame.grid(row=0, column=0, sticky="ew", padx=12, pady=8)
        server_frame.columnconfigure(1, weight=1)

        ttk.Label(server_frame, text="Server Status:").grid(
            row=0, column=0, padx=6, pady=6
        )
        ttk.Label(server_frame, textvariable=self.server_status_var).grid(
            row=0, column=1, padx=6, pady=6, sticky="w"
        )
        self.start_button = ttk.Button(
            server_frame, text="Start Server", command=self._on_start
        )
        self.start_button.grid(row=0, column=2, padx=6, pady=6)
        self.stop_button = ttk.Button(
            server_frame, text="Stop Server", command=self._on_stop
        )
        self.stop_button.grid(row=0, column=3, padx=6, pady=6)

        error_label = ttk.Label(
            self.root, textvariable=self.error_var, foreground="#b00020", anchor="w"
        )
        error_label.grid(row=1, column=0, sticky="ew", padx=12)

        weather_frame = ttk.LabelFrame(self.root, text="City Weather")
        weather_frame.grid(row=2, column=0, sticky="ew", padx=12, pady=8)
        for idx in range(4):
            weather_frame.columnconfigure(idx, weight=1)

        self.city_combo = ttk.Combobox(
            weather_frame,
            textvariable=self.city_var,
            values=(),
            state="disabled",
        )
        self.city_combo.grid(row=0, column=0, columnspan=4, padx=6, pady=6, sticky="ew")

        headings = (
            ("Temperature", "temperature"),
            ("Condition", "condition"),
            ("Humidity", "humidity"),
            ("Wind Speed", "wind"),
        )
        for column, (title, key) in enumerate(headings):
            ttk.Label(weather_frame, text=title).grid(
                row=1, column=column, padx=4, pady=4
            )
            ttk.Label(weather_frame, textvariable=self.weather_vars[key]).grid(
                row=2, column=column, padx=4, pady=4
            )

        ttk.Label(weather_frame, textvariable=self.prompt_var, anchor="w").grid(
            row=3, column=0, columnspan=4, padx=6, pady=(4, 6), sticky="ew"
        )

        convert_frame = ttk.LabelFrame(self.root, text="Temperature Converter")
        convert_frame.grid(row=3, column=0, sticky="ew", padx=12, pady=8)
        convert_frame.columnconfigure(5, weight=1)

        ttk.Entry(convert_frame, textvariable=self.convert_value_var, width=8).grid(
            row=0, column=0, padx=6, pady=6
        )
        ttk.Combobox(
            convert_frame,
            textvariable=self.convert_from_var,
            values=UNITS,
            state="readonly",
            width=11,
        ).grid(row=0, column=1, padx=6, pady=6)
        ttk.Label(convert_frame, text="→").grid(row=0, column=2)
        ttk.Combobox(
            convert_frame,
            textvariable=self.convert_to_var,
            values=UNITS,
            state="readonly",
            width=11,
        ).grid(row=0, column=3, padx=6, pady=6)
        self.convert_button = ttk.Button(
            convert_frame, text="Convert", command=self._on_convert
        )
        self.convert_button.grid(row=0, column=4, padx=6, pady=6)
        ttk.Label(convert_frame, textvariable=self.convert_result_var).grid(
            row=0, column=5, padx=6, pady=6, sticky="w"
        )

        status_label = ttk.Label(self.root, textvariable=self.status_var, anchor="w")
        status_label.grid(row=4, column=0, sticky="ew", padx=12, pady=(8, 12))

    def _bind_events(self) -> None:
        self.city_combo.bind("<<ComboboxSelected>>", self._on_select_city)
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

    def _refresh_controls(self) -> None:
        status = self.shell.status
        self.server_status_var.set(STATUS_LABELS[status])
        running = status is ServerStatus.RUNNING
        can_start = not self._busy and status is ServerStatus.STOPPED
        can_stop = not self._busy and running
        self.start_button.state(["!disabled"] if can_start else ["disabled"])
        self.stop_button.state(["!disabled"] if can_stop else ["disabled"])
        self.convert_button.state(["!disabled"] if running else ["disabled"])
        has_cities = bool(self.city_combo.cget("values"))
        self.city_combo.configure(
            state="readonly" if running and has_cities else "disabled"
        )

    # ------------------------------------------------------------------
    # Server lifecycle
    # ------------------------------------------------------------------

    def _on_start(self) -> None:
        self._busy = True
        self.error_var.set("")
        future = self.shell.start()
        self._refresh_controls()
        self._attach_future(
            future,
            on_success=self._handle_started,
            on_error=lambda exc: self._handle_lifecycle_error("start MCP server", exc),
        )

    def _handle_started(self, message: str) -> None:
        self._busy = False
        self.status_var.set(message)
        self._refresh_controls()
        self._fetch_cities()

    def _on_stop(self) -> None:
        self._busy = True
        self.error_var.set("")
        future = self.shell.stop()
        self._refresh_controls()
        self._attach_future(
            future,
            on_success=self._handle_stopped,
            on_error=lambda exc: self._handle_lifecycle_error("stop MCP server", exc),
        )

    def _handle_stopped(self, message: str) -> None:
        self._busy = False
        self.status_var.set(message)
        self.city_combo.configure(values=())
        self.city_var.set("")
        self.prompt_var.set("")
        self._clear_weather()
        self._refresh_controls()

    def _handle_lifecycle_error(self, action: str, exc: BaseException) -> None:
        self._busy = False
        self.error_var.set(failure_message(action, exc))
        self._refresh_controls()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _fetch_cities(self) -> None:
        future = self.shell.fetch_cities()
        self._attach_future(
            future,
            on_success=self._handle_cities,
            on_error=lambda exc: self.error_var.set(
                failure_message("fetch cities", exc)
            ),
        )

    def _handle_cities(self, cities: List[str]) -> None:
        self.city_combo.configure(values=cities)
        self.status_var.set(f"{len(cities)} cities available.")
        self._refresh_controls()

    def _on_select_city(self, _event: Any) -> None:
        city = self.city_var.get()
        if not city:
            return
        self.error_var.set("")
        self.status_var.set(f"Fetching weather for {city}…")
        self._attach_future(
            self.shell.fetch_weather(city),
            on_success=lambda result: self._update_weather_display(city, result),
            on_error=self._handle_weather_error,
        )
        self._attach_future(
            self.shell.weather_prompt(city),
            on_success=self.prompt_var.set,
            on_error=lambda exc: self.prompt_var.set(""),
        )

    def _update_weather_display(
        self, city: str, result: WeatherRecord | CityNotFound
    ) -> None:
        if city != self.city_var.get():
            return
        if isinstance(result, CityNotFound):
            self._clear_weather()
            self.error_var.set(result.message)
            return
        self.weather_vars["temperature"].set(self._format_temperature(result.temperature))
        self.weather_vars["condition"].set(result.condition)
        self.weather_vars["humidity"].set(self._format_humidity(result.humidity))
        self.weather_vars["wind"].set(self._format_wind(result.wind_speed))
        self.status_var.set(f"Weather updated for {city}.")

    def _handle_weather_error(self, exc: BaseException) -> None:
        self._clear_weather()
        self.error_var.set(failure_message("fetch weather data", exc))

    def _on_convert(self) -> None:
        raw = self.convert_value_var.get().strip()
        try:
            value = float(raw)
        except ValueError:
            self.error_var.set(f"Not a number: {raw!r}")
            return
        self.error_var.set("")
        source = self.convert_from_var.get()
        target = self.convert_to_var.get()
        self._attach_future(
            self.shell.convert_temperature(value, source, target),
            on_success=lambda converted: self.convert_result_var.set(
                self._format_conversion(converted, target)
            ),
            on_error=lambda exc: self.error_var.set(
                failure_message("convert temperature", exc)
            ),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _attach_future(
        self,
        future,
        *,
        on_success: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        def _callback(fut):
            try:
                result = fut.result()
            except Exception as exc:  # pylint: disable=broad-except
                logger.exception("Weather request failed", exc_info=exc)
                self.root.after(0, lambda err=exc: self._handle_error(err, on_error))
            else:
                if on_success:
                    self.root.after(0, lambda: on_success(result))

        future.add_done_callback(_callback)

    def _handle_error(
        self,
        exc: BaseException,
        extra_handler: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        if extra_handler:
            extra_handler(exc)
        source = "MCP Server" if isinstance(exc, (ToolError, ServiceError)) else "Client"
        self.status_var.set(f"{source} error: {exc}")
        self._refresh_controls()

    def _clear_weather(self) -> None:
        for var in self.weather_vars.values():
            var.set("--")

    @staticmethod
    def _format_temperature(value: Any) -> str:
        if value is None:
            return "--"
        return f"{value}°F"

    @staticmethod
    def _format_humidity(value: Any) -> str:
        if value is None:
            return "--"
        return f"{value}%"

    @staticmethod
    def _format_wind(value: Any) -> str:
        if value is None:
            return "--"
        return f"{value} mph"

    @staticmethod
    def _format_conversion(value: float, unit: str) -> str:
        suffix = "°C" if unit == "celsius" else "°F"
        return f"{value:.1f} {suffix}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _on_close(self) -> None:
        try:
            self.shell.close()
        finally:
            self.root.destroy()


def run_app(backend: WeatherBackend, *, autostart: bool = False, log_level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger("weather_client.mcp_client").setLevel(logging.DEBUG)
    logging.getLogger("weather_client.line_client").setLevel(logging.DEBUG)
    root = tk.Tk()
    WeatherApp(root, backend, autostart=autostart)
    root.mainloop()


__all__ = ["run_app", "WeatherApp"]
