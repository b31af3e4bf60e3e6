import threading

from pose_estimator import PoseEstimator
from pose_smoother import PoseSmoother


class LatestValue:
    """
    Single-writer / single-reader slot holding only the most recent value.

    The writer replaces the value under a lock; the reader gets the current
    value and its sequence number, so it can tell whether anything new
    arrived since its last read. Older values are dropped, never queued.
    """

    def __init__(self, initial=None):
        self._lock = threading.Lock()
        self._value = initial
        self._seq = 0

    def put(self, value):
        with self._lock:
            self._value = value
            self._seq += 1

    def get(self):
        with self._lock:
            return self._value, self._seq

    @property
    def seq(self):
        with self._lock:
            return self._seq


class TrackingSession:
    """
    One estimate + update per rendered frame.

    The host render loop calls tick() once per frame with whatever detection
    is most recent. Stopping the session just feeds "no target" from then on,
    so the eyewear drifts back to rest.
    """

    def __init__(self, estimator=None, smoother=None, running=True):
        self.estimator = estimator or PoseEstimator()
        self.smoother = smoother or PoseSmoother()
        self.running = running
        self.frames = 0
        self.last_target = None
        self.last_seq = None

    def start(self):
        if not self.running:
            print("[INFO] Tracking started")
        self.running = True

    def stop(self):
        if self.running:
            print("[INFO] Tracking stopped")
        self.running = False

    def reset(self):
        self.smoother.reset()
        self.last_target = None
        print("[INFO] Tracking state reset to rest pose")

    @property
    def state(self):
        return self.smoother.state

    @property
    def display_pose(self):
        return self.smoother.display_pose

    def tick(self, detection, W, H, seq=None):
        """
        Advance one frame and return the display pose.

        With `seq` given, a sample that was already ticked is not ticked again:
        several renderers sharing one detection get the same pose back.
        """
        if seq is not None and seq == self.last_seq:
            return self.smoother.display_pose
        self.last_seq = seq
        target = None
        if self.running:
            target = self.estimator.estimate(detection, W, H)
        self.last_target = target
        self.frames += 1
        return self.smoother.update(target)
