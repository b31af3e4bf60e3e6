# Asynchronous landmark detection - camera reads and face-mesh inference run on
# a background thread, the render loop only picks up the most recent result.

import cv2
import threading
import time

import tryon_config as cfg
from landmarks import Detected, LandmarkSet, NOT_DETECTED
from tracking_session import LatestValue


class MediaPipeLandmarkDetector:
    """Single-face FaceMesh wrapped as the landmark oracle: BGR frame -> Detected / NOT_DETECTED."""

    def __init__(self, min_detection_confidence=0.5, min_tracking_confidence=0.5):
        import mediapipe as mp
        self.fm = mp.solutions.face_mesh.FaceMesh(
            max_num_faces=1, refine_landmarks=False,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence)

    def __call__(self, frame):
        H, W = frame.shape[:2]
        res = self.fm.process(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
        if not res.multi_face_landmarks:
            return NOT_DETECTED
        lm = res.multi_face_landmarks[0].landmark
        return Detected(LandmarkSet.from_mediapipe(lm, W, H))

    def close(self):
        self.fm.close()


class FrameSample:
    __slots__ = ("frame", "detection", "ts")

    def __init__(self, frame, detection, ts):
        self.frame = frame
        self.detection = detection
        self.ts = ts


class AsyncLandmarkSource:
    """
    Background capture + detection.

    The worker thread is the only writer of `latest`; read() hands the
    render loop the newest sample without waiting on camera IO or inference.
    Render rate and detection rate are independent, so consecutive reads may
    return the same sample.
    """

    def __init__(self, src=None, width=None, height=None, mirror=None,
                 capture=None, detector=None, start=True):
        """
        Args:
            src: camera index
            width / height: requested capture size
            mirror: flip horizontally before detection
            capture: object with read()/release(), replaces cv2.VideoCapture
            detector: callable frame -> Detected / NOT_DETECTED
        """
        if capture is None:
            capture = cv2.VideoCapture(cfg.CAM_INDEX if src is None else src)
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.W_CAP if width is None else width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.H_CAP if height is None else height)
        self.cap = capture
        self.detector = detector if detector is not None else MediaPipeLandmarkDetector()
        self.mirror = cfg.H_MIRROR if mirror is None else mirror

        self.latest = LatestValue()
        self.lock = threading.Lock()
        self.running = False
        self.thread = None

        self.detect_count = 0
        self.error_count = 0
        self.last_rate_time = time.time()

        if start:
            self.start()

    def start(self):
        if self.running:
            return
        self.running = True
        self.thread = threading.Thread(target=self._worker, daemon=True)
        self.thread.start()

    def step(self):
        """Read one frame and run detection on it; False if the camera gave nothing."""
        ok, frame = self.cap.read()
        if not ok or frame is None:
            return False
        if self.mirror:
            frame = cv2.flip(frame, 1)
        try:
            detection = self.detector(frame)
        except Exception as e:
            self.error_count += 1
            print(f"[ERROR] Landmark detection failed: {e}")
            detection = NOT_DETECTED
        self.latest.put(FrameSample(frame, detection, time.time()))
        with self.lock:
            self.detect_count += 1
        return True

    def _worker(self):
        while self.running:
            if not self.step():
                # camera not ready, retry shortly
                time.sleep(0.01)

    def read(self):
        """Most recent FrameSample (None before the first frame)."""
        sample, _ = self.latest.get()
        return sample

    def get_detect_fps(self):
        with self.lock:
            now = time.time()
            dt = now - self.last_rate_time
            if dt > 0:
                fps = self.detect_count / dt
                self.detect_count = 0
                self.last_rate_time = now
                return fps
            return 0

    def release(self):
        self.running = False
        if self.thread is not None and self.thread.is_alive():
            self.thread.join(timeout=1.0)
        self.cap.release()
        close = getattr(self.detector, "close", None)
        if close is not None:
            close()


if __name__ == "__main__":
    print("=== Async landmark source ===\n")
    source = AsyncLandmarkSource()
    try:
        time.sleep(2.0)
        sample = source.read()
        if sample is None:
            print("[WARNING] No frame received from camera")
        else:
            print(f"  Last detection: {sample.detection!r}")
        print(f"  Detection FPS: {source.get_detect_fps():.1f}")
    finally:
        source.release()
