import math
from typing import Optional

import tryon_config as cfg
from pose_estimator import Pose

TRACKING = "TRACKING"
IDLE = "IDLE"


def clamp(x, a, b):
    return a if x < a else (b if x > b else x)

def lerp(cur, target, alpha):
    return cur + (target - cur) * alpha

def smooth_angle(cur, target, alpha):
    """Blend along the shortest arc; the delta is wrapped into [-pi, pi)."""
    delta = (target - cur + math.pi) % (2*math.pi) - math.pi
    return cur + delta * alpha


class SmootherParams:
    def __init__(self,
                 alpha=None,
                 rest_position=None,
                 rest_rotation=None,
                 rest_scale=None,
                 debounce_frames=None,
                 shortest_angle=None):
        self.alpha = cfg.SMOOTH_ALPHA if alpha is None else float(alpha)
        if rest_position is None:
            rest_position = (cfg.REST_X, cfg.REST_Y, cfg.FIXED_DEPTH)
        self.rest_position = tuple(float(v) for v in rest_position)
        self.rest_rotation = cfg.REST_ROTATION if rest_rotation is None else float(rest_rotation)
        self.rest_scale = cfg.REST_SCALE if rest_scale is None else float(rest_scale)
        self.debounce_frames = cfg.IDLE_DEBOUNCE if debounce_frames is None else int(debounce_frames)
        self.shortest_angle = cfg.SHORTEST_ANGLE if shortest_angle is None else bool(shortest_angle)

        if not 0.0 < self.alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {self.alpha}")
        if not self.rest_scale > 0:
            raise ValueError(f"rest_scale must be positive, got {self.rest_scale}")
        if self.debounce_frames < 0:
            raise ValueError(f"debounce_frames must be >= 0, got {self.debounce_frames}")

    def rest_pose(self):
        return Pose(self.rest_position, self.rest_rotation, self.rest_scale)


class PoseSmoother:
    """
    Owns the displayed pose and eases it toward each frame's target.

    Every call blends by a constant alpha, so the response is tied to the
    call rate rather than to elapsed time. With a target present the
    position, roll and scale move toward it and the state is TRACKING.
    Without one, position and roll move back toward the rest pose, scale
    is kept, and the state is IDLE. One missed frame is enough to go
    IDLE unless debounce_frames holds the last pose for a few frames first.
    """

    def __init__(self, params: Optional[SmootherParams] = None):
        self.params = params or SmootherParams()
        self._rest = self.params.rest_pose()
        self._display = self._rest.copy()
        self.state = IDLE
        self.missed_frames = 0

    @property
    def display_pose(self):
        return self._display.copy()

    def _blend_angle(self, cur, target):
        if self.params.shortest_angle:
            return smooth_angle(cur, target, self.params.alpha)
        return lerp(cur, target, self.params.alpha)

    def _set_state(self, state):
        if state != self.state and cfg.TRACK_DEBUG:
            print(f"[TRACK] {self.state} -> {state} (missed={self.missed_frames}) {self._display}")
        self.state = state

    def update(self, target: Optional[Pose], dt=None) -> Pose:
        """Advance one frame. `dt` is accepted for call-site symmetry and ignored."""
        a = self.params.alpha
        d = self._display

        if target is not None:
            self.missed_frames = 0
            d.position += (target.position - d.position) * a
            d.rotation = self._blend_angle(d.rotation, target.rotation)
            d.scale = lerp(d.scale, target.scale, a)
            self._set_state(TRACKING)
            return d.copy()

        self.missed_frames += 1
        if self.state == TRACKING and self.missed_frames <= self.params.debounce_frames:
            return d.copy()

        d.position += (self._rest.position - d.position) * a
        d.rotation = self._blend_angle(d.rotation, self._rest.rotation)
        self._set_state(IDLE)
        return d.copy()

    def reset(self):
        """Snap back to the rest pose, scale included."""
        self._display.position[:] = self._rest.position
        self._display.rotation = self._rest.rotation
        self._display.scale = self._rest.scale
        self.missed_frames = 0
        self._set_state(IDLE)
