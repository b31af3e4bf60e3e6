import math

import numpy as np
import pytest

from landmarks import Detected, LandmarkSet, NOT_DETECTED, N_POINTS
from pose_estimator import EstimatorParams, Pose, PoseEstimator, centroid, estimate_pose

W, H = 640, 480


@pytest.fixture
def estimator():
    return PoseEstimator(EstimatorParams(
        pos_scale_x=0.5, pos_scale_y=0.3, fixed_depth=-0.5,
        rotation_damping=0.5, scale_floor=0.05, scale_coeff=0.0035))


class TestMissingInput:
    def test_none_is_no_target(self, estimator):
        assert estimator.estimate(None, W, H) is None

    def test_not_detected_is_no_target(self, estimator):
        assert estimator.estimate(NOT_DETECTED, W, H) is None

    @pytest.mark.parametrize("empty", ["left_eye", "right_eye", "nose"])
    def test_empty_required_subset(self, estimator, make_face, empty):
        face = make_face()
        subsets = {name: face.subset(name) for name in face.names()}
        subsets[empty] = []
        assert estimator.estimate(LandmarkSet(subsets), W, H) is None

    def test_missing_subset_reads_as_empty(self, estimator, make_face):
        face = make_face()
        lm = LandmarkSet({"left_eye": face.left_eye, "right_eye": face.right_eye})
        assert not lm.is_complete()
        assert estimator.estimate(lm, W, H) is None

    def test_zero_frame_size(self, estimator, make_face):
        assert estimator.estimate(make_face(), 0, H) is None
        assert estimator.estimate(make_face(), W, 0) is None


class TestDegenerateGeometry:
    def test_nan_point(self, estimator, make_face):
        face = make_face()
        eye = list(face.left_eye)
        eye[0] = (float("nan"), 150.0)
        lm = LandmarkSet({"left_eye": eye, "right_eye": face.right_eye, "nose": face.nose})
        assert estimator.estimate(lm, W, H) is None

    def test_infinite_point(self, estimator, make_face):
        face = make_face()
        eye = list(face.right_eye)
        eye[2] = (float("inf"), 150.0)
        lm = LandmarkSet({"left_eye": face.left_eye, "right_eye": eye, "nose": face.nose})
        assert estimator.estimate(lm, W, H) is None

    def test_coincident_eyes_hit_scale_floor(self, estimator, make_face):
        pose = estimator.estimate(make_face((250, 150), (250, 150)), W, H)
        assert pose is not None
        assert pose.scale == 0.05
        assert pose.rotation == 0.0


class TestGeometry:
    def test_centroid(self):
        c = centroid([(0, 0), (2, 0), (2, 4), (0, 4)])
        assert c.tolist() == [1.0, 2.0]
        assert centroid([]) is None

    def test_horizontal_eyes(self, estimator, make_face):
        pose = estimator.estimate(make_face((200, 150), (300, 150)), W, H)
        assert pose.rotation == 0.0
        # normalized x = (250/640 - 0.5) * 2 = -0.21875
        assert pose.position[0] == pytest.approx(-0.21875 * 0.5)
        # normalized y = -(150/480 - 0.5) * 2 = 0.375, image y is flipped
        assert pose.position[1] == pytest.approx(0.375 * 0.3)
        assert pose.position[2] == -0.5
        assert pose.scale == pytest.approx(100 * 0.0035)

    def test_tilted_eyes(self, estimator, make_face):
        pose = estimator.estimate(make_face((200, 140), (300, 160)), W, H)
        face_angle = math.atan2(20, 100)
        assert face_angle == pytest.approx(0.1974, abs=1e-4)
        assert pose.rotation == pytest.approx(0.0987, abs=1e-4)
        assert pose.rotation == pytest.approx(face_angle * 0.5)

    def test_frame_center_maps_to_origin(self, estimator, make_face):
        pose = estimator.estimate(make_face((270, 240), (370, 240)), W, H)
        assert pose.position[0] == pytest.approx(0.0)
        assert pose.position[1] == pytest.approx(0.0)

    def test_detected_wrapper(self, estimator, make_face):
        face = make_face()
        assert estimator.estimate(Detected(face), W, H) == estimator.estimate(face, W, H)

    def test_is_pure(self, estimator, make_face):
        face = make_face((210, 130), (330, 170))
        first = estimator.estimate(face, W, H)
        for _ in range(3):
            assert estimator.estimate(face, W, H) == first

    def test_module_helper(self, make_face):
        params = EstimatorParams(scale_floor=0.2, scale_coeff=0.001)
        pose = estimate_pose(make_face(), W, H, params)
        assert pose.scale == 0.2


def test_random_faces_are_finite_and_above_floor(estimator):
    rng = np.random.default_rng(7)
    for _ in range(200):
        pts = rng.uniform(-50, 700, size=(N_POINTS, 2))
        pose = estimator.estimate(LandmarkSet.from_points(pts.tolist()), W, H)
        assert pose is not None
        assert pose.is_finite()
        assert pose.scale >= 0.05


def test_scale_floor_must_be_positive():
    with pytest.raises(ValueError):
        EstimatorParams(scale_floor=0.0)


@pytest.mark.parametrize("kw", [
    {"scale_coeff": 0.0},
    {"scale_coeff": -0.001},
    {"pos_scale_x": 0.0},
    {"pos_scale_y": 0.0},
    {"rotation_damping": 0.0},
    {"rotation_damping": 1.5},
])
def test_invalid_estimator_params(kw):
    with pytest.raises(ValueError):
        EstimatorParams(**kw)


def test_full_damping_is_allowed():
    assert EstimatorParams(rotation_damping=1.0).rotation_damping == 1.0


def test_pose_snapshot_dict():
    pose = Pose((0.3, 0.1, -0.5), 0.1, 0.4)
    assert pose.to_dict() == {"position": [0.3, 0.1, -0.5], "rotation": 0.1, "scale": 0.4}
    clone = pose.copy()
    clone.position[0] = 1.0
    assert pose.position[0] == 0.3


class _MeshPoint:
    def __init__(self, x, y):
        self.x, self.y = x, y


def test_from_mediapipe_mesh(estimator):
    rng = np.random.default_rng(3)
    mesh = [_MeshPoint(x, y) for x, y in rng.uniform(0.2, 0.8, size=(468, 2))]
    mesh[33], mesh[133] = _MeshPoint(0.30, 0.40), _MeshPoint(0.40, 0.40)
    mesh[362], mesh[263] = _MeshPoint(0.60, 0.40), _MeshPoint(0.70, 0.40)

    lm = LandmarkSet.from_mediapipe(mesh, W, H)
    assert len(lm) == N_POINTS
    assert len(lm.left_eye) == 6 and len(lm.right_eye) == 6 and len(lm.nose) == 9
    assert lm.left_eye[0] == (0.30 * W, 0.40 * H)
    assert lm.right_eye[3] == (0.70 * W, 0.40 * H)
    assert estimator.estimate(lm, W, H) is not None


def test_from_points_needs_68():
    with pytest.raises(ValueError):
        LandmarkSet.from_points([(0, 0)] * 10)
