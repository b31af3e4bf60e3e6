import math
import cv2
import numpy as np

import tryon_config as cfg
from pose_estimator import EstimatorParams
from pose_smoother import clamp


def _read_rgba(path):
    img = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if img is None: raise FileNotFoundError(path)
    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGRA)
    elif img.shape[2] == 3:
        a = np.full(img.shape[:2], 255, np.uint8)
        img = np.dstack([img, a])
    return img


def pose_to_image(pose, W, H, params=None):
    """
    Map a render-space pose back onto a W x H frame.

    Inverse of the estimator's normalization: returns the eye-center pixel,
    the roll in image coordinates (radians) and the eye distance in pixels
    implied by the pose scale.
    """
    p = params or EstimatorParams()
    x, y, _ = pose.position
    cx = (x / p.pos_scale_x / 2 + 0.5) * W
    cy = (0.5 - y / p.pos_scale_y / 2) * H
    eye_dist = pose.scale / p.scale_coeff
    return np.array([cx, cy], np.float64), pose.rotation, eye_dist


def warp_rgba(img_rgba, dst_center, theta, width_px, out_shape):
    h, w = img_rgba.shape[:2]
    s = float(width_px) / w
    c, sn = math.cos(theta), math.sin(theta)

    M2 = np.array([[c, -sn], [sn, c]], np.float32) @ np.array([[s, 0], [0, s]], np.float32)
    t = np.asarray(dst_center, np.float32) - M2 @ np.array([w / 2.0, h / 2.0], np.float32)

    M = np.zeros((2, 3), np.float32)
    M[:, :2] = M2
    M[:, 2] = t

    H_out, W_out = out_shape[:2]
    warped = cv2.warpAffine(img_rgba, M, (W_out, H_out),
                           flags=cv2.INTER_LINEAR,
                           borderMode=cv2.BORDER_CONSTANT,
                           borderValue=(0,0,0,0))

    bgr = warped[..., :3].astype(np.float32)
    alpha = warped[..., 3:4].astype(np.float32) / 255.0
    return bgr, alpha


class OverlayRenderer:
    """Draws the eyewear at a display pose: a warped RGBA sprite if one loaded, vector glasses otherwise."""

    def __init__(self, sprite_path=None, width_factor=None, params=None, show_hud=None):
        self.params = params or EstimatorParams()
        self.width_factor = cfg.GLASSES_WIDTH_FACTOR if width_factor is None else float(width_factor)
        self.show_hud = cfg.SHOW_HUD if show_hud is None else show_hud
        self.sprite = None

        path = cfg.GLASSES_PNG if sprite_path is None else sprite_path
        if path:
            try:
                self.sprite = _read_rgba(path)
                print(f"[INFO] Loaded eyewear sprite: {path} {self.sprite.shape[1]}x{self.sprite.shape[0]}")
            except FileNotFoundError:
                print(f"[WARNING] Eyewear sprite NOT found: {path}, drawing vector glasses")

    def _draw_vector(self, frame, center, theta, width):
        u = np.array([math.cos(theta), math.sin(theta)])
        lens_r = width * 0.22
        bridge = width * 0.12
        color = (30, 30, 30)
        thick = max(2, int(round(width * 0.025)))

        lens_L = center - u * (bridge / 2 + lens_r)
        lens_R = center + u * (bridge / 2 + lens_r)
        axes = (int(round(lens_r)), int(round(lens_r * 0.75)))
        angle_deg = math.degrees(theta)
        for c in (lens_L, lens_R):
            cv2.ellipse(frame, tuple(np.int32(np.round(c))), axes, angle_deg, 0, 360,
                        color, thick, cv2.LINE_AA)
        cv2.line(frame, tuple(np.int32(np.round(center - u * bridge / 2))),
                 tuple(np.int32(np.round(center + u * bridge / 2))), color, thick, cv2.LINE_AA)
        return frame

    def draw(self, frame, pose):
        H, W = frame.shape[:2]
        center, theta, eye_dist = pose_to_image(pose, W, H, self.params)
        width = clamp(eye_dist * self.width_factor, 8.0, 2.0 * W)

        if self.sprite is None:
            return self._draw_vector(frame, center, theta, width)

        fg, a = warp_rgba(self.sprite, center, theta, width, frame.shape)
        return (frame * (1 - a) + fg * a).astype(np.uint8)

    def draw_hud(self, frame, state, fps=0.0):
        if not self.show_hud:
            return frame
        W = frame.shape[1]
        color = (0,255,0) if state == "TRACKING" else (0,200,255)
        cv2.putText(frame, state, (14, 36),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.8, color, 2, cv2.LINE_AA)
        if fps > 0:
            cv2.putText(frame, f"{fps:4.1f} FPS", (W-200, 42),
                        cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0,255,0), 2, cv2.LINE_AA)
        return frame
