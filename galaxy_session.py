"""
galaxy_session.py
=================
Regeneration lifecycle for an interactively edited galaxy.

A ``GalaxySession`` owns the single *current* point cloud shown by a
graphics layer.  Each regeneration builds a new cloud, releases the graphics
resources of the outgoing one, then uploads and installs the replacement,
so after any number of edits exactly one cloud is live.

Edits reach the session as ``RegenerateRequested`` commands.  A
``RegenerateDebouncer`` sits in front of it and only dispatches once the
editing surface has been quiet for a short period, so dragging a slider
does not trigger a full regeneration on every intermediate value.

Usage
-----
    session   = GalaxySession(layer, seed=7)
    debouncer = RegenerateDebouncer(session.regenerate, quiet_period=0.25)
    debouncer.submit(params.replace(spin=1.4))
    ...
    debouncer.poll()        # call periodically from the UI loop
"""

from __future__ import annotations

import dataclasses
import time
from typing import Any, Callable, Optional, Protocol

from spiralgen import GalaxyParameters, PointCloud, RandomSource, generate, make_rng


# ---------------------------------------------------------------------------
# Collaborator protocol
# ---------------------------------------------------------------------------

class GraphicsLayer(Protocol):
    """Renderer-side owner of the resources bound to a point cloud."""

    def upload(self, cloud: PointCloud, params: GalaxyParameters) -> Any:
        """Create renderable resources for *cloud*; return an opaque handle."""
        ...

    def release(self, handle: Any) -> None:
        """Free everything created by the matching ``upload``."""
        ...


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class CurrentCloud:
    """The cloud currently on display, with its graphics handle."""

    params: GalaxyParameters
    cloud: PointCloud
    handle: Any
    generation: int       # 1 for the first install, +1 per replacement


@dataclasses.dataclass(frozen=True)
class RegenerateRequested:
    """Command raised when a parameter edit settles."""

    params: GalaxyParameters
    requested_at: float


# ---------------------------------------------------------------------------
# Session controller
# ---------------------------------------------------------------------------

class GalaxySession:
    """Owns the current cloud and performs the dispose-then-install swap.

    Parameters
    ----------
    graphics : GraphicsLayer
        Receives ``upload`` / ``release`` calls.
    seed : int, optional
        When given, every regeneration draws from a freshly seeded source,
        so identical parameters always reproduce the identical galaxy.
    rng : RandomSource, optional
        Shared source used when no seed is given.  Defaults to an unseeded
        numpy generator.
    verbose : bool
        Print one line per regeneration.
    """

    def __init__(
        self,
        graphics: GraphicsLayer,
        seed: Optional[int] = None,
        rng: Optional[RandomSource] = None,
        verbose: bool = True,
    ) -> None:
        self._graphics = graphics
        self._seed     = seed
        self._rng      = rng if rng is not None else make_rng()
        self._verbose  = verbose
        self._current: Optional[CurrentCloud] = None
        self._generation = 0
        self._installing = False

    @property
    def current(self) -> Optional[CurrentCloud]:
        return self._current

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    @seed.setter
    def seed(self, value: Optional[int]) -> None:
        self._seed = value

    def random_source(self) -> RandomSource:
        """Source for the next generation."""
        if self._seed is not None:
            return make_rng(self._seed)
        return self._rng

    def build(self, params: GalaxyParameters) -> PointCloud:
        """Generate a cloud without touching the current one.

        Safe to call from a worker thread; pair with ``install`` on the
        thread that owns the graphics layer.
        """
        return generate(params, self.random_source())

    def install(self, params: GalaxyParameters, cloud: PointCloud) -> CurrentCloud:
        """Release the current cloud's resources and install *cloud*."""
        if self._installing:
            raise RuntimeError("a point cloud is already being installed")
        self._installing = True
        try:
            self._release_current()
            handle = self._graphics.upload(cloud, params)
            self._generation += 1
            self._current = CurrentCloud(
                params=params, cloud=cloud, handle=handle,
                generation=self._generation,
            )
        finally:
            self._installing = False
        return self._current

    def regenerate(self, params: GalaxyParameters) -> CurrentCloud:
        """Generate and install in one synchronous step.

        ``InvalidParameter`` propagates before anything is released, so a
        rejected edit leaves the previous galaxy on display.
        """
        if self._installing:
            raise RuntimeError("a point cloud is already being installed")
        t0 = time.perf_counter()
        cloud = self.build(params)
        current = self.install(params, cloud)
        if self._verbose:
            print(f"  Generation {current.generation}: {len(cloud):,} points, "
                  f"{params.branches} arms in {time.perf_counter() - t0:.2f}s")
        return current

    def handle(self, request: RegenerateRequested) -> CurrentCloud:
        return self.regenerate(request.params)

    def close(self) -> None:
        """Release the current cloud (end of session)."""
        self._release_current()

    def _release_current(self) -> None:
        if self._current is None:
            return
        outgoing, self._current = self._current, None
        self._graphics.release(outgoing.handle)

    def __enter__(self) -> "GalaxySession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Debouncing of edit commands
# ---------------------------------------------------------------------------

class RegenerateDebouncer:
    """Coalesce bursts of ``RegenerateRequested`` into one dispatch.

    Only the most recent request is kept.  ``poll`` dispatches it once
    *quiet_period* seconds have passed since it was submitted.  Dispatch is
    synchronous: whatever *dispatch* returns (or raises) comes straight
    back out of ``poll`` / ``flush``.
    """

    def __init__(
        self,
        dispatch: Callable[[GalaxyParameters], Any],
        quiet_period: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._dispatch = dispatch
        self.quiet_period = quiet_period
        self._clock = clock
        self._pending: Optional[RegenerateRequested] = None

    @property
    def pending(self) -> Optional[RegenerateRequested]:
        return self._pending

    def submit(self, params: GalaxyParameters) -> RegenerateRequested:
        """Queue *params*, replacing any request not yet dispatched."""
        self._pending = RegenerateRequested(params=params, requested_at=self._clock())
        return self._pending

    def due(self) -> bool:
        return (self._pending is not None
                and self._clock() - self._pending.requested_at >= self.quiet_period)

    def poll(self) -> Any:
        """Dispatch the pending request if it has settled; else return None."""
        if not self.due():
            return None
        return self.flush()

    def flush(self) -> Any:
        """Dispatch the pending request immediately, if any."""
        request, self._pending = self._pending, None
        if request is None:
            return None
        return self._dispatch(request.params)

    def cancel(self) -> None:
        self._pending = None
