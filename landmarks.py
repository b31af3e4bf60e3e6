from typing import Dict, NamedTuple, Sequence, Tuple


class Point2D(NamedTuple):
    x: float
    y: float


# 68-point scheme (iBUG), left/right as they appear in the image
SUBSET_SLICES = {
    "jaw": (0, 17),
    "left_eyebrow": (17, 22),
    "right_eyebrow": (22, 27),
    "nose": (27, 36),
    "left_eye": (36, 42),
    "right_eye": (42, 48),
    "mouth": (48, 68),
}
N_POINTS = 68
REQUIRED_SUBSETS = ("left_eye", "right_eye", "nose")

# MediaPipe FaceMesh (468) index for each of the 68 points above
MESH_TO_68 = (
    162, 234, 93, 58, 172, 136, 149, 148, 152, 377, 378, 365, 397, 288, 323, 454, 389,
    71, 63, 105, 66, 107,
    336, 296, 334, 293, 301,
    168, 197, 5, 4, 75, 97, 2, 326, 305,
    33, 160, 158, 133, 153, 144,
    362, 385, 387, 263, 373, 380,
    61, 39, 37, 0, 267, 269, 291, 405, 314, 17, 84, 181,
    78, 82, 13, 312, 308, 317, 14, 87,
)


class LandmarkSet:
    """
    One face's landmarks for a single frame, grouped into named subsets.

    Read-only once built. A subset that was not supplied reads as empty,
    which the pose estimator treats as "no face".
    """

    def __init__(self, subsets: Dict[str, Sequence]):
        self._subsets = {
            name: tuple(Point2D(float(p[0]), float(p[1])) for p in pts)
            for name, pts in subsets.items()
        }

    @classmethod
    def from_points(cls, points):
        """Build from 68 (x, y) pixel points in scheme order."""
        if len(points) != N_POINTS:
            raise ValueError(f"expected {N_POINTS} points, got {len(points)}")
        return cls({name: points[a:b] for name, (a, b) in SUBSET_SLICES.items()})

    @classmethod
    def from_mediapipe(cls, landmarks, W, H):
        """Build from a FaceMesh landmark list (normalized x/y) for a W x H frame."""
        pts = [(landmarks[i].x * W, landmarks[i].y * H) for i in MESH_TO_68]
        return cls.from_points(pts)

    def subset(self, name) -> Tuple[Point2D, ...]:
        return self._subsets.get(name, ())

    @property
    def left_eye(self):
        return self.subset("left_eye")

    @property
    def right_eye(self):
        return self.subset("right_eye")

    @property
    def nose(self):
        return self.subset("nose")

    def names(self):
        return tuple(self._subsets)

    def is_complete(self):
        return all(len(self.subset(n)) > 0 for n in REQUIRED_SUBSETS)

    def __len__(self):
        return sum(len(pts) for pts in self._subsets.values())

    def __repr__(self):
        counts = ", ".join(f"{k}={len(v)}" for k, v in self._subsets.items())
        return f"LandmarkSet({counts})"


class Detected(NamedTuple):
    landmarks: LandmarkSet


class NotDetected:
    __slots__ = ()

    def __repr__(self):
        return "NOT_DETECTED"

    def __bool__(self):
        return False


NOT_DETECTED = NotDetected()


def as_landmarks(detection):
    """Unwrap Detected / NotDetected / None / a bare LandmarkSet to a LandmarkSet or None."""
    if isinstance(detection, Detected):
        return detection.landmarks
    if isinstance(detection, LandmarkSet):
        return detection
    return None
