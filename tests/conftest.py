import numpy as np
import pytest

from landmarks import LandmarkSet

# six points whose mean is exactly (0, 0)
EYE_OFFSETS = [(-10, 0), (-5, -3), (5, -3), (10, 0), (5, 3), (-5, 3)]


def build_face(left=(200, 150), right=(300, 150)):
    """68-point face whose eye subsets have their centroids exactly at `left` and `right`."""
    lc = np.array(left, dtype=np.float64)
    rc = np.array(right, dtype=np.float64)
    mid = (lc + rc) / 2
    pts = []
    pts += [(mid[0] - 80 + 10 * i, mid[1] + 60 + abs(i - 8) * -4) for i in range(17)]
    pts += [(lc[0] - 20 + 10 * i, lc[1] - 25) for i in range(5)]
    pts += [(rc[0] - 20 + 10 * i, rc[1] - 25) for i in range(5)]
    pts += [(mid[0], mid[1] + 5 * i) for i in range(4)]
    pts += [(mid[0] - 10 + 5 * i, mid[1] + 25) for i in range(5)]
    pts += [tuple(lc + off) for off in EYE_OFFSETS]
    pts += [tuple(rc + off) for off in EYE_OFFSETS]
    pts += [(mid[0] - 20 + 2 * i, mid[1] + 90) for i in range(20)]
    return LandmarkSet.from_points(pts)


@pytest.fixture
def make_face():
    return build_face


class FakeCapture:
    """Stands in for cv2.VideoCapture: returns copies of one frame, or fails."""

    def __init__(self, frame=None, ok=True):
        self.frame = np.zeros((480, 640, 3), np.uint8) if frame is None else frame
        self.ok = ok
        self.reads = 0
        self.released = False

    def read(self):
        self.reads += 1
        if not self.ok:
            return False, None
        return True, self.frame.copy()

    def set(self, prop_id, value):
        return True

    def release(self):
        self.released = True


@pytest.fixture
def fake_capture():
    return FakeCapture()
