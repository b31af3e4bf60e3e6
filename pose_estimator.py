import math
import numpy as np
from typing import Optional

import tryon_config as cfg
from landmarks import as_landmarks


class Pose:
    """Placement of the eyewear in render space: position (x, y, z), roll (rad), scale."""

    __slots__ = ("position", "rotation", "scale")

    def __init__(self, position, rotation=0.0, scale=1.0):
        self.position = np.array(position, dtype=np.float64).reshape(3)
        self.rotation = float(rotation)
        self.scale = float(scale)

    def copy(self):
        return Pose(self.position.copy(), self.rotation, self.scale)

    def is_finite(self):
        return bool(np.all(np.isfinite(self.position))
                    and math.isfinite(self.rotation) and math.isfinite(self.scale))

    def to_dict(self):
        x, y, z = (float(v) for v in self.position)
        return {"position": [x, y, z], "rotation": self.rotation, "scale": self.scale}

    def __eq__(self, other):
        if not isinstance(other, Pose):
            return NotImplemented
        return (np.array_equal(self.position, other.position)
                and self.rotation == other.rotation and self.scale == other.scale)

    def __repr__(self):
        x, y, z = self.position
        return f"Pose(pos=({x:.4f},{y:.4f},{z:.4f}), rot={self.rotation:.4f}, scale={self.scale:.4f})"


class EstimatorParams:
    def __init__(self,
                 pos_scale_x=None,
                 pos_scale_y=None,
                 fixed_depth=None,
                 rotation_damping=None,
                 scale_floor=None,
                 scale_coeff=None):
        self.pos_scale_x = cfg.POS_SCALE_X if pos_scale_x is None else float(pos_scale_x)
        self.pos_scale_y = cfg.POS_SCALE_Y if pos_scale_y is None else float(pos_scale_y)
        self.fixed_depth = cfg.FIXED_DEPTH if fixed_depth is None else float(fixed_depth)
        self.rotation_damping = cfg.ROTATION_DAMPING if rotation_damping is None else float(rotation_damping)
        self.scale_floor = cfg.SCALE_FLOOR if scale_floor is None else float(scale_floor)
        self.scale_coeff = cfg.SCALE_COEFF if scale_coeff is None else float(scale_coeff)

        for name in ("scale_floor", "scale_coeff", "pos_scale_x", "pos_scale_y"):
            if not getattr(self, name) > 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if not 0.0 < self.rotation_damping <= 1.0:
            raise ValueError(f"rotation_damping must be in (0, 1], got {self.rotation_damping}")


def centroid(points):
    if len(points) == 0:
        return None
    return np.asarray(points, dtype=np.float64).reshape(-1, 2).mean(axis=0)


class PoseEstimator:
    """
    Turns one frame's landmarks into a target Pose.

    Stateless: the same landmarks and frame size always give the same pose.
    Returns None when there is no usable face (no detection, an empty
    eye/nose subset, or geometry that would not produce finite numbers).
    """

    def __init__(self, params: Optional[EstimatorParams] = None):
        self.params = params or EstimatorParams()

    def estimate(self, landmarks, W, H) -> Optional[Pose]:
        lm = as_landmarks(landmarks)
        if lm is None:
            return None
        if not lm.is_complete():
            return None
        if not (W > 0 and H > 0):
            return None

        p = self.params
        c_left = centroid(lm.left_eye)
        c_right = centroid(lm.right_eye)
        if not (np.all(np.isfinite(c_left)) and np.all(np.isfinite(c_right))):
            return None

        eye_center = 0.5 * (c_left + c_right)
        eye_vec = c_right - c_left
        eye_distance = float(np.linalg.norm(eye_vec))

        nx = (eye_center[0] / W - 0.5) * 2
        ny = -(eye_center[1] / H - 0.5) * 2  # image y grows down, render y grows up

        roll = math.atan2(eye_vec[1], eye_vec[0])

        pose = Pose((nx * p.pos_scale_x, ny * p.pos_scale_y, p.fixed_depth),
                    rotation=roll * p.rotation_damping,
                    scale=max(p.scale_floor, eye_distance * p.scale_coeff))
        if not pose.is_finite():
            return None
        return pose


def estimate_pose(landmarks, W, H, params=None):
    return PoseEstimator(params).estimate(landmarks, W, H)
