"""
Globe rotation for Region Mesher.

Turns the globe so a selected region faces the viewer. The identity
orientation shows (lat 0, lng -90) head-on; a target's orientation is
the polar turn (around X) times the azimuthal turn (around Y) measured
from that reference, so orientations are absolute and never
accumulate drift.

The controller is frame-driven: tick() advances the active animation
and a caller can either call it from its own render loop or let run()
drive it with asyncio.sleep().
"""

from typing import Callable, Optional, Tuple
import asyncio
import logging
import math
import time

from .utils.math_utils import (
    IDENTITY_QUAT,
    Quat,
    normalize_angle,
    quat_from_axis_angle,
    quat_multiply,
    quat_slerp,
)
from .config import (
    REFERENCE_LAT,
    REFERENCE_LNG,
    ROTATION_DURATION_S,
    ROTATION_FRAME_INTERVAL_S,
)

logger = logging.getLogger(__name__)

LatLng = Tuple[float, float]

REFERENCE: LatLng = (REFERENCE_LAT, REFERENCE_LNG)

X_AXIS = (1.0, 0.0, 0.0)
Y_AXIS = (0.0, 1.0, 0.0)


def rotation_delta(current: LatLng, target: LatLng) -> Quat:
    """
    Rotation turning the view from current to target.

    The longitude difference takes the shorter way round.

    Args:
        current: (lat, lng) now facing the viewer
        target: (lat, lng) that should face the viewer

    Returns:
        Quaternion (x, y, z, w)
    """
    azimuth = normalize_angle(target[1] - current[1])
    polar = target[0] - current[0]

    azimuthal = quat_from_axis_angle(Y_AXIS, -math.radians(azimuth))
    polar_q = quat_from_axis_angle(X_AXIS, math.radians(polar))

    # Polar applied after azimuthal
    return quat_multiply(polar_q, azimuthal)


class RotationAnimation:
    """
    One interpolation from a start to a target orientation.

    Attributes:
        target: (lat, lng) being turned to
        start_orientation: Orientation when the animation began
        end_orientation: Orientation at the end
        completed: Future resolved with the final orientation once an
            advance reaches the end; cancelled if superseded
    """

    def __init__(
        self,
        target: LatLng,
        start_orientation: Quat,
        end_orientation: Quat,
        start_time: float,
        duration: float,
        loop: asyncio.AbstractEventLoop
    ):
        self.target = target
        self.start_orientation = start_orientation
        self.end_orientation = end_orientation
        self.start_time = start_time
        self.duration = duration
        self.completed: asyncio.Future = loop.create_future()

    @property
    def finished(self) -> bool:
        """True once completed or cancelled."""
        return self.completed.done()

    @property
    def superseded(self) -> bool:
        return self.completed.cancelled()

    def fraction(self, now: float) -> float:
        return (now - self.start_time) / self.duration

    def advance(self, now: float) -> Quat:
        """
        Orientation at time now.

        At fraction >= 1 the orientation snaps to the end and the
        completed future is resolved (only the first time).
        """
        if self.finished:
            return self.end_orientation

        t = self.fraction(now)
        if t < 1.0:
            return quat_slerp(self.start_orientation, self.end_orientation, t)

        self.completed.set_result(self.end_orientation)
        return self.end_orientation

    def cancel(self) -> None:
        if not self.completed.done():
            self.completed.cancel()

    def __repr__(self) -> str:
        state = "done" if self.finished else "running"
        return f"RotationAnimation(target={self.target}, {state})"


class RegionRotationController:
    """
    Animates the globe orientation towards selected regions.

    Attributes:
        duration: Animation length in seconds
        frame_interval: Sleep between ticks when run() drives the animation
        orientation: Current globe orientation
    """

    def __init__(
        self,
        duration: float = ROTATION_DURATION_S,
        frame_interval: float = ROTATION_FRAME_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        on_update: Optional[Callable[[Quat], None]] = None
    ):
        if duration <= 0:
            raise ValueError("duration must be positive")
        if frame_interval <= 0:
            raise ValueError("frame_interval must be positive")

        self.duration = duration
        self.frame_interval = frame_interval
        self.clock = clock
        self.on_update = on_update
        self.orientation: Quat = IDENTITY_QUAT

        self._active: Optional[RotationAnimation] = None
        self._driver: Optional[asyncio.Task] = None

    @property
    def active(self) -> Optional[RotationAnimation]:
        return self._active

    @staticmethod
    def orientation_for(target: LatLng) -> Quat:
        """Absolute orientation that puts target in front of the viewer."""
        return rotation_delta(REFERENCE, target)

    def rotate_to(self, target: LatLng) -> RotationAnimation:
        """
        Start turning towards target, superseding any running animation.

        Must be called with a running event loop.

        Returns:
            The new animation
        """
        if self._active is not None:
            logger.debug(f"Superseding rotation towards {self._active.target}")
            self._active.cancel()

        animation = RotationAnimation(
            target=target,
            start_orientation=self.orientation,
            end_orientation=self.orientation_for(target),
            start_time=self.clock(),
            duration=self.duration,
            loop=asyncio.get_running_loop(),
        )
        self._active = animation
        logger.debug(f"Rotating to lat={target[0]:.3f}, lng={target[1]:.3f}")
        return animation

    def tick(self, now: Optional[float] = None) -> Quat:
        """
        Per-frame callback: advance the active animation.

        Returns:
            Orientation after the update
        """
        animation = self._active
        if animation is None:
            return self.orientation

        if now is None:
            now = self.clock()

        self.orientation = animation.advance(now)
        if animation.finished:
            self._active = None

        if self.on_update is not None:
            self.on_update(self.orientation)

        return self.orientation

    async def run(self) -> None:
        """Tick every frame_interval until no animation is active."""
        while self._active is not None:
            self.tick()
            if self._active is None:
                break
            await asyncio.sleep(self.frame_interval)

    def ensure_running(self) -> asyncio.Task:
        """Start a run() task unless one is already driving animations."""
        if self._driver is None or self._driver.done():
            self._driver = asyncio.get_running_loop().create_task(self.run())
        return self._driver

    def reset(self) -> None:
        """Cancel any animation and return to the reference orientation."""
        if self._active is not None:
            self._active.cancel()
            self._active = None
        self.orientation = IDENTITY_QUAT

    async def close(self) -> None:
        """Stop animating and wait for the driver task to finish."""
        if self._active is not None:
            self._active.cancel()
            self._active = None
        if self._driver is not None and not self._driver.done():
            self._driver.cancel()
            try:
                await self._driver
            except asyncio.CancelledError:
                pass
        self._driver = None
