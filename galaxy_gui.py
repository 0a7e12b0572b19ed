"""
galaxy_gui.py
=============
Tkinter editor for the spiral galaxy generator.

Layout
------
Left panel   – galaxy parameters (shape, jitter, appearance, rotation,
               reproducibility) in scrollable, collapsible sections.
Centre panel – embedded matplotlib 3-D view of the current galaxy, spinning
               at its rotation rates.

Edits regenerate the galaxy once they settle: releasing a slider, pressing
Return or leaving a spinbox, or picking a colour submits a regenerate
request.  Requests are debounced, built on a worker thread and swapped into
the view on the Tk thread, releasing the previous cloud first.

Usage
-----
    python galaxy_gui.py

Dependencies
------------
Same as the core generator (numpy, pandas, scipy, matplotlib) plus tkinter,
which is bundled with the standard Python installer.  On Ubuntu/Debian:
    sudo apt-get install python3-tk
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

import tkinter as tk
from tkinter import ttk, colorchooser, filedialog, messagebox

import matplotlib
matplotlib.use("TkAgg")
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg, NavigationToolbar2Tk
from matplotlib.colors import to_hex
from matplotlib.figure import Figure

from galaxy_session import GalaxySession, RegenerateDebouncer
from plot_preview import ScatterLayer, rotate_positions, set_artist_positions, setup_axes
from spiralgen import (
    PARAMETER_RANGES,
    GalaxyParameters,
    InvalidParameter,
    ParamRange,
    parse_color,
)


POLL_MS    = 50    # debouncer poll interval
FRAME_MS   = 40    # rotation animation frame interval
QUIET_SECS = 0.25  # settle time before a regenerate request is dispatched


# ---------------------------------------------------------------------------
# Reusable compound widgets
# ---------------------------------------------------------------------------

class SliderEntry(ttk.Frame):
    """Linked horizontal scale + spinbox that commits when the edit settles.

    *on_commit* fires on slider release and on Return / focus-out in the
    spinbox, never on intermediate drag positions.
    """

    def __init__(
        self,
        parent,
        label: str,
        var: tk.Variable,
        rng: ParamRange,
        on_commit: Callable[[], None],
        label_width: int = 22,
        spin_width: int = 9,
        **kw,
    ):
        super().__init__(parent, **kw)
        self._var       = var
        self._rng       = rng
        self._on_commit = on_commit
        self._integral  = isinstance(var, tk.IntVar)
        self._last      = var.get()

        ttk.Label(self, text=label, width=label_width, anchor="w").grid(
            row=0, column=0, sticky="w", padx=(4, 2), pady=1,
        )
        self._scale = ttk.Scale(
            self, orient="horizontal", length=130,
            from_=rng.lo, to=rng.hi,
            command=self._on_scale,
        )
        self._scale.set(var.get())
        self._scale.grid(row=0, column=1, padx=4)
        self._scale.bind("<ButtonRelease-1>", self._commit)

        self._spin = ttk.Spinbox(
            self, from_=rng.lo, to=rng.hi, increment=rng.step,
            textvariable=var, width=spin_width,
            command=self._commit,
        )
        self._spin.grid(row=0, column=2, padx=(2, 4))
        self._spin.bind("<Return>",   self._commit)
        self._spin.bind("<FocusOut>", self._commit)

    def _snap(self, raw: float):
        value = self._rng.clamp(raw)
        return int(round(value)) if self._integral else value

    def _on_scale(self, val: str) -> None:
        try:
            self._var.set(self._snap(float(val)))
        except ValueError:
            return

    def _commit(self, _evt=None) -> None:
        try:
            value = self._snap(float(self._spin.get()))
        except ValueError:
            value = self._snap(self._rng.lo)
        self._var.set(value)
        self._scale.set(value)
        if value != self._last:
            self._last = value
            self._on_commit()


# ---------------------------------------------------------------------------

class ColorEntry(ttk.Frame):
    """Colour swatch + hex entry + colour-picker button; commits on change."""

    def __init__(self, parent, label: str, var: tk.StringVar,
                 on_commit: Callable[[], None], label_width: int = 22, **kw):
        super().__init__(parent, **kw)
        self._var       = var
        self._on_commit = on_commit

        ttk.Label(self, text=label, width=label_width, anchor="w").grid(
            row=0, column=0, sticky="w", padx=(4, 2), pady=1,
        )
        self._swatch = tk.Label(self, width=3, relief="sunken", cursor="hand2")
        self._swatch.grid(row=0, column=1, padx=(2, 2))
        self._swatch.bind("<Button-1>", self._open_picker)

        self._entry = ttk.Entry(self, textvariable=var, width=10)
        self._entry.grid(row=0, column=2, padx=2)
        self._entry.bind("<Return>",   self._commit)
        self._entry.bind("<FocusOut>", self._commit)

        ttk.Button(self, text="Pick…", width=6,
                   command=self._open_picker).grid(row=0, column=3, padx=(2, 4))

        self._last = var.get()
        self._refresh_swatch()

    def _refresh_swatch(self) -> None:
        try:
            self._swatch.configure(bg=self._var.get().strip())
        except tk.TclError:
            self._swatch.configure(bg="#888888")

    def _commit(self, _evt=None) -> None:
        self._refresh_swatch()
        value = self._var.get().strip()
        if value != self._last:
            self._last = value
            self._on_commit()

    def _open_picker(self, _evt=None) -> None:
        try:
            _rgb, hexval = colorchooser.askcolor(
                color=self._var.get(), title="Choose colour", parent=self)
        except tk.TclError:
            return
        if hexval:
            self._var.set(hexval.lower())
            self._commit()


# ---------------------------------------------------------------------------

class Section(ttk.Frame):
    """Collapsible parameter section with a toggle-button header."""

    def __init__(self, parent, title: str, start_open: bool = True, **kw):
        super().__init__(parent, **kw)
        self._open  = start_open
        self._title = title

        self._btn = ttk.Button(self, text=f"{'▼' if start_open else '▶'}  {title}",
                               command=self._toggle)
        self._btn.pack(fill="x", padx=2, pady=(4, 0))
        ttk.Separator(self, orient="horizontal").pack(fill="x", padx=2)

        self._inner = ttk.Frame(self, padding=(2, 2, 2, 6))
        if start_open:
            self._inner.pack(fill="x", expand=True)

    @property
    def inner(self) -> ttk.Frame:
        return self._inner

    def _toggle(self) -> None:
        if self._open:
            self._inner.pack_forget()
            self._btn.configure(text=f"▶  {self._title}")
        else:
            self._inner.pack(fill="x", expand=True)
            self._btn.configure(text=f"▼  {self._title}")
        self._open = not self._open


# ---------------------------------------------------------------------------
# Main GUI class
# ---------------------------------------------------------------------------

class GalaxyGUI:
    """Top-level editor window."""

    def __init__(self, root: tk.Tk, params: Optional[GalaxyParameters] = None) -> None:
        self.root = root
        root.title("Spiral Galaxy Generator")
        root.minsize(1100, 720)

        self._worker: Optional[threading.Thread] = None
        self._closing = False
        self._anim_t0 = time.perf_counter()

        self._build_vars(params or GalaxyParameters())
        self._build_ui()

        self._layer     = ScatterLayer(self._ax)
        self._session   = GalaxySession(self._layer, seed=self._seed_or_none())
        self._debouncer = RegenerateDebouncer(self._start_generation, quiet_period=QUIET_SECS)

        root.protocol("WM_DELETE_WINDOW", self._on_close)

        self._on_commit()
        self._debouncer.flush()
        root.after(POLL_MS, self._poll)
        root.after(FRAME_MS, self._tick)

    # ── Variable definitions ──────────────────────────────────────────────

    def _build_vars(self, p: GalaxyParameters) -> None:
        iv = tk.IntVar
        dv = tk.DoubleVar
        sv = tk.StringVar
        bv = tk.BooleanVar

        # ── Shape ───────────────────────────────────────────────────────
        self.v_count            = iv(value=p.count)
        self.v_radius           = dv(value=p.radius)
        self.v_branches         = iv(value=p.branches)
        self.v_spin             = dv(value=p.spin)

        # ── Jitter ──────────────────────────────────────────────────────
        self.v_randomness       = dv(value=p.randomness)
        self.v_randomness_power = dv(value=p.randomness_power)

        # ── Appearance ──────────────────────────────────────────────────
        self.v_size             = dv(value=p.size)
        self.v_inner_color      = sv(value=_as_hex(p.inner_color))
        self.v_outer_color      = sv(value=_as_hex(p.outer_color))

        # ── Rotation ────────────────────────────────────────────────────
        self.v_rotation_x       = dv(value=p.rotation_x)
        self.v_rotation_y       = dv(value=p.rotation_y)
        self.v_rotation_z       = dv(value=p.rotation_z)
        self.v_animate          = bv(value=True)

        # ── Reproducibility ─────────────────────────────────────────────
        self.v_fixed_seed       = bv(value=True)
        self.v_seed             = iv(value=7)

    # ── UI construction ───────────────────────────────────────────────────

    def _build_ui(self) -> None:
        self._build_action_bar()

        paned = ttk.PanedWindow(self.root, orient="horizontal")
        paned.pack(fill="both", expand=True, padx=6, pady=(6, 0))

        left_outer = ttk.Frame(paned, width=400)
        left_outer.pack_propagate(False)
        paned.add(left_outer, weight=0)

        centre_frame = ttk.Frame(paned)
        paned.add(centre_frame, weight=1)

        self._build_param_panel(left_outer)
        self._build_preview_panel(centre_frame)

    def _build_param_panel(self, parent: ttk.Frame) -> None:
        """Scrollable left panel with collapsible parameter sections."""
        scroll_canvas = tk.Canvas(parent, highlightthickness=0, borderwidth=0)
        vscroll = ttk.Scrollbar(parent, orient="vertical",
                                command=scroll_canvas.yview)
        scroll_canvas.configure(yscrollcommand=vscroll.set)
        vscroll.pack(side="right", fill="y")
        scroll_canvas.pack(side="left", fill="both", expand=True)

        inner = ttk.Frame(scroll_canvas)
        win_id = scroll_canvas.create_window((0, 0), window=inner, anchor="nw")

        inner.bind("<Configure>",
                   lambda _e: scroll_canvas.configure(
                       scrollregion=scroll_canvas.bbox("all")))
        scroll_canvas.bind("<Configure>",
                           lambda e: scroll_canvas.itemconfigure(win_id, width=e.width))

        def _wheel_left(evt):
            if evt.delta:
                scroll_canvas.yview_scroll(int(-1 * evt.delta / 120), "units")
        scroll_canvas.bind("<MouseWheel>", _wheel_left)
        scroll_canvas.bind("<Button-4>", lambda _e: scroll_canvas.yview_scroll(-1, "units"))
        scroll_canvas.bind("<Button-5>", lambda _e: scroll_canvas.yview_scroll(1, "units"))

        R, C = PARAMETER_RANGES, self._on_commit

        def slider(parent, label, var, name):
            SliderEntry(parent, label, var, R[name], C).pack(fill="x")

        sec = Section(inner, "Shape")
        sec.pack(fill="x", padx=4, pady=3)
        s = sec.inner
        slider(s, "Points (count)",       self.v_count,    "count")
        slider(s, "Radius",               self.v_radius,   "radius")
        slider(s, "Arms (branches)",      self.v_branches, "branches")
        slider(s, "Spin",                 self.v_spin,     "spin")

        sec = Section(inner, "Jitter")
        sec.pack(fill="x", padx=4, pady=3)
        s = sec.inner
        slider(s, "Randomness",           self.v_randomness,       "randomness")
        slider(s, "Randomness power",     self.v_randomness_power, "randomness_power")

        sec = Section(inner, "Appearance")
        sec.pack(fill="x", padx=4, pady=3)
        s = sec.inner
        slider(s, "Point size",           self.v_size, "size")
        ColorEntry(s, "Inner colour", self.v_inner_color, C).pack(fill="x")
        ColorEntry(s, "Outer colour", self.v_outer_color, C).pack(fill="x")

        sec = Section(inner, "Rotation (rad/s)", start_open=False)
        sec.pack(fill="x", padx=4, pady=3)
        s = sec.inner
        slider(s, "About x",              self.v_rotation_x, "rotation_x")
        slider(s, "About y",              self.v_rotation_y, "rotation_y")
        slider(s, "About z",              self.v_rotation_z, "rotation_z")
        ttk.Checkbutton(s, text="Animate", variable=self.v_animate,
                        command=self._restart_animation).pack(anchor="w", padx=4, pady=2)

        sec = Section(inner, "Reproducibility")
        sec.pack(fill="x", padx=4, pady=3)
        s = sec.inner
        ttk.Checkbutton(s, text="Fixed seed (same parameters → same galaxy)",
                        variable=self.v_fixed_seed,
                        command=C).pack(anchor="w", padx=4, pady=2)
        row = ttk.Frame(s)
        row.pack(fill="x", pady=1)
        ttk.Label(row, text="Random seed", width=22, anchor="w").pack(side="left", padx=(4, 2))
        seed_box = ttk.Spinbox(row, from_=0, to=99_999, increment=1,
                               textvariable=self.v_seed, width=8, command=C)
        seed_box.pack(side="left")
        seed_box.bind("<Return>", lambda _e: C())

    def _build_preview_panel(self, parent: ttk.Frame) -> None:
        self._fig = Figure(figsize=(8, 8))
        self._ax  = setup_axes(self._fig, GalaxyParameters(radius=self.v_radius.get()))

        self._canvas = FigureCanvasTkAgg(self._fig, master=parent)
        self._canvas.get_tk_widget().pack(fill="both", expand=True)

        toolbar_frame = ttk.Frame(parent)
        toolbar_frame.pack(fill="x")
        NavigationToolbar2Tk(self._canvas, toolbar_frame).update()

    def _build_action_bar(self) -> None:
        bar = ttk.Frame(self.root)
        bar.pack(side="bottom", fill="x", padx=6, pady=(0, 6))

        self.btn_generate = ttk.Button(bar, text="Regenerate",
                                       command=self._on_regenerate, width=12)
        self.btn_generate.pack(side="left", padx=(0, 4))

        ttk.Separator(bar, orient="vertical").pack(side="left", fill="y", padx=8, pady=4)

        self.btn_png = ttk.Button(bar, text="Export PNG…",
                                  command=lambda: self._export("png"), width=13)
        self.btn_png.pack(side="left", padx=4)

        self.btn_svg = ttk.Button(bar, text="Export SVG…",
                                  command=lambda: self._export("svg"), width=13)
        self.btn_svg.pack(side="left", padx=4)

        self._status_var = tk.StringVar(value="Ready.")
        ttk.Label(bar, textvariable=self._status_var, anchor="w").pack(
            side="left", padx=12)

        self._progress = ttk.Progressbar(bar, mode="indeterminate", length=110)
        self._progress.pack(side="right", padx=4)

    # ── Helpers ───────────────────────────────────────────────────────────

    def _build_params(self) -> GalaxyParameters:
        return GalaxyParameters(
            count            = self.v_count.get(),
            size             = self.v_size.get(),
            radius           = self.v_radius.get(),
            branches         = self.v_branches.get(),
            spin             = self.v_spin.get(),
            randomness       = self.v_randomness.get(),
            randomness_power = self.v_randomness_power.get(),
            inner_color      = self.v_inner_color.get().strip(),
            outer_color      = self.v_outer_color.get().strip(),
            rotation_x       = self.v_rotation_x.get(),
            rotation_y       = self.v_rotation_y.get(),
            rotation_z       = self.v_rotation_z.get(),
        )

    def _seed_or_none(self) -> Optional[int]:
        try:
            return self.v_seed.get() if self.v_fixed_seed.get() else None
        except tk.TclError:
            return None

    def _set_busy(self, busy: bool) -> None:
        if self._closing:
            return
        self.btn_generate.configure(state="disabled" if busy else "normal")
        if busy:
            self._progress.start(10)
        else:
            self._progress.stop()

    def _status(self, msg: str) -> None:
        self._status_var.set(msg)

    def _is_busy(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    # ── Regenerate flow ───────────────────────────────────────────────────

    def _on_commit(self) -> None:
        """An edit settled: queue a regenerate request."""
        try:
            params = self._build_params()
        except tk.TclError as exc:
            self._status(f"Invalid value: {exc}")
            return
        self._debouncer.submit(params)

    def _on_regenerate(self) -> None:
        self._on_commit()
        if not self._is_busy():
            self._debouncer.flush()

    def _poll(self) -> None:
        # A request arriving mid-build stays pending until the worker is done.
        if not self._is_busy():
            self._debouncer.poll()
        self.root.after(POLL_MS, self._poll)

    def _start_generation(self, params: GalaxyParameters) -> None:
        self._session.seed = self._seed_or_none()
        self._set_busy(True)
        self._status(f"Generating {params.count:,} points…")
        self._worker = threading.Thread(
            target=self._generate_worker, args=(params,), daemon=True)
        self._worker.start()

    def _generate_worker(self, params: GalaxyParameters) -> None:
        try:
            t0 = time.perf_counter()
            cloud = self._session.build(params)
            dt = time.perf_counter() - t0
            self._post(lambda: self._install(params, cloud, dt))
        except InvalidParameter as exc:
            msg = str(exc)
            self._post(lambda: self._status(f"Invalid parameters: {msg}"))
        except Exception as exc:
            msg = str(exc)
            self._post(lambda: (
                self._status(f"Generation failed: {msg}"),
                messagebox.showerror("Generation failed", msg),
            ))
        finally:
            self._post(lambda: self._set_busy(False))

    def _install(self, params: GalaxyParameters, cloud, dt: float) -> None:
        """Swap the new cloud into the view (Tk thread only)."""
        if self._closing:
            return
        current = self._session.install(params, cloud)
        margin = max(params.radius, 0.01) * 1.1
        self._ax.set_xlim(-margin, margin)
        self._ax.set_ylim(-margin, margin)
        self._ax.set_zlim(-margin, margin)
        self._restart_animation()
        self._canvas.draw_idle()
        self._status(f"Generation {current.generation}: {len(cloud):,} points "
                     f"in {dt:.2f}s.")

    # ── Rotation animation ────────────────────────────────────────────────

    def _restart_animation(self) -> None:
        self._anim_t0 = time.perf_counter()

    def _tick(self) -> None:
        current = self._session.current
        if current is not None and self.v_animate.get() and len(current.cloud):
            elapsed = time.perf_counter() - self._anim_t0
            rotated = rotate_positions(current.cloud.positions, current.params, elapsed)
            set_artist_positions(current.handle, rotated)
            self._canvas.draw_idle()
        self.root.after(FRAME_MS, self._tick)

    # ── Export / shutdown ─────────────────────────────────────────────────

    def _export(self, fmt: str) -> None:
        if self._session.current is None:
            messagebox.showwarning("No galaxy", "Nothing has been generated yet.")
            return
        filetypes = [(f"{fmt.upper()} files", f"*.{fmt}"), ("All files", "*.*")]
        path = filedialog.asksaveasfilename(
            defaultextension=f".{fmt}",
            filetypes=filetypes,
            initialfile=f"galaxy.{fmt}",
            title=f"Export as {fmt.upper()}",
        )
        if not path:
            return
        save_kw: dict = dict(bbox_inches="tight", facecolor=self._fig.get_facecolor())
        if fmt == "png":
            save_kw["dpi"] = 150
        try:
            self._fig.savefig(path, format=fmt, **save_kw)
        except (OSError, ValueError) as exc:
            self._status(f"Export failed: {exc}")
            messagebox.showerror("Export failed", str(exc))
            return
        self._status(f"Saved → {path}")

    def _post(self, callback: Callable[[], None]) -> None:
        """Hand *callback* from the worker to the Tk thread, unless closing."""
        if self._closing:
            return
        try:
            self.root.after(0, callback)
        except (tk.TclError, RuntimeError):
            # The window went away between the check and the call.
            if not self._closing:
                raise

    def _on_close(self) -> None:
        self._closing = True
        self._debouncer.cancel()
        self._session.close()
        self.root.destroy()


def _as_hex(color) -> str:
    return to_hex(parse_color(color))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    root = tk.Tk()
    # 3-D matplotlib redraws get sluggish well below the renderer default count.
    GalaxyGUI(root, GalaxyParameters(count=20_000))
    root.mainloop()


if __name__ == "__main__":
    main()
