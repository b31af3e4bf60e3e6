import time, threading, statistics
import cv2
from flask import Flask, Response, jsonify, send_from_directory

import tryon_config as cfg
from landmark_async import AsyncLandmarkSource
from overlay import OverlayRenderer
from tracking_session import TrackingSession

state_lock = threading.Lock()
session = TrackingSession(running=False)
renderer = None
source = None
last_jpeg = None
last_ts = 0


def get_renderer():
    global renderer
    if renderer is None:
        renderer = OverlayRenderer()
    return renderer

def get_source():
    global source
    if source is None:
        source = AsyncLandmarkSource()
        print(f"[INFO] Camera {cfg.CAM_INDEX} opened at {cfg.W_CAP}x{cfg.H_CAP}")
    return source


def render_frame(sample, fps=0.0, seq=None):
    """One render-loop iteration: track once per detection sample, draw the eyewear, draw the HUD."""
    frame = sample.frame.copy()
    H, W = frame.shape[:2]
    with state_lock:
        pose = session.tick(sample.detection, W, H, seq)
        running = session.running
        state = session.state
    r = get_renderer()
    if running:
        frame = r.draw(frame, pose)
    return r.draw_hud(frame, state if running else "STOPPED", fps)


def _print_perf(perf_times, frame_no, fps_ema):
    print(f"\n{'='*60}")
    print(f"Performance Analysis (Average of the past 60 frames, Frame #{frame_no})")
    print(f"{'='*60}")
    print(f"{'Tracking + render':<20s}: {statistics.mean(perf_times['render']):6.2f}ms")
    print(f"{'JPEG encoding':<20s}: {statistics.mean(perf_times['jpeg']):6.2f}ms")
    print(f"{'-'*60}")
    print(f"{'Displayed FPS':<20s}: {fps_ema:6.2f}")
    print(f"{'='*60}\n")


def generate_stream(src=None, max_frames=None):
    global last_jpeg, last_ts
    src = src or get_source()

    fps_ema = 0.0
    t_prev = time.perf_counter()
    seen_seq = 0
    n_frames = 0
    perf_times = {'render': [], 'jpeg': []}

    while max_frames is None or n_frames < max_frames:
        sample, seq = src.latest.get()
        if sample is None or seq == seen_seq:
            time.sleep(0.005)
            continue
        seen_seq = seq

        t1 = time.perf_counter()
        frame = render_frame(sample, fps_ema, seq)
        t2 = time.perf_counter()
        ok, buf = cv2.imencode('.jpg', frame, [cv2.IMWRITE_JPEG_QUALITY, cfg.JPEG_QUALITY])
        t3 = time.perf_counter()

        dt = t3 - t_prev
        t_prev = t3
        if dt > 0:
            fps = 1.0 / dt
            fps_ema = fps if fps_ema == 0 else 0.9*fps_ema + 0.1*fps

        n_frames += 1
        if cfg.PERF_LOG:
            perf_times['render'].append((t2 - t1) * 1000)
            perf_times['jpeg'].append((t3 - t2) * 1000)
            if n_frames % 60 == 0:
                _print_perf(perf_times, n_frames, fps_ema)
                for key in perf_times:
                    perf_times[key] = []

        if not ok: continue
        last_jpeg, last_ts = buf.tobytes(), time.time()
        yield (b'--frame\r\nContent-Type: image/jpeg\r\n\r\n' + last_jpeg + b'\r\n')


app = Flask(__name__, static_folder=None)

@app.route("/")
def root():
    return send_from_directory(cfg.HERE, "eyewear_tryon.html")

@app.route("/stream.mjpg")
def stream_jpg():
    return Response(generate_stream(), mimetype="multipart/x-mixed-replace; boundary=frame")

@app.route("/snapshot")
def snapshot():
    if last_jpeg is None: return "no frame yet", 503
    return Response(last_jpeg, headers={
        "Content-Type": "image/jpeg",
        "Content-Disposition": f'attachment; filename="snapshot_{int(last_ts)}.jpg"'
    })

def _status():
    with state_lock:
        return {
            "running": session.running,
            "state": session.state,
            "frames": session.frames,
            "pose": session.display_pose.to_dict(),
            "target": session.last_target.to_dict() if session.last_target is not None else None,
        }

@app.route("/api/pose")
def api_pose():
    return jsonify(ok=True, **_status())

@app.route("/api/start", methods=["POST"])
def api_start():
    with state_lock:
        session.start()
    return jsonify(ok=True, **_status())

@app.route("/api/stop", methods=["POST"])
def api_stop():
    with state_lock:
        session.stop()
    return jsonify(ok=True, **_status())

@app.route("/api/toggle", methods=["POST"])
def api_toggle():
    with state_lock:
        if session.running:
            session.stop()
        else:
            session.start()
    return jsonify(ok=True, **_status())

@app.route("/api/reset", methods=["POST"])
def api_reset():
    with state_lock:
        session.reset()
    return jsonify(ok=True, **_status())

@app.route("/api/config")
def api_config():
    est = session.estimator.params
    sm = session.smoother.params
    return jsonify(ok=True, config={
        "alpha": sm.alpha,
        "rest_position": list(sm.rest_position),
        "rest_rotation": sm.rest_rotation,
        "rest_scale": sm.rest_scale,
        "debounce_frames": sm.debounce_frames,
        "shortest_angle": sm.shortest_angle,
        "scale_floor": est.scale_floor,
        "scale_coeff": est.scale_coeff,
        "rotation_damping": est.rotation_damping,
        "fixed_depth": est.fixed_depth,
        "pos_scale": [est.pos_scale_x, est.pos_scale_y],
    })

@app.errorhandler(405)
def method_not_allowed(e):
    return jsonify(ok=False, err="method not allowed"), 405


if __name__ == "__main__":
    print("\n" + "="*70)
    print("AR Eyewear Try-On - pose tracking demo")
    print("="*70)
    print("\n[INFO] Configuration:")
    print(f"  - Camera: {cfg.CAM_INDEX}, Resolution: {cfg.W_CAP}x{cfg.H_CAP}, Mirror: {cfg.H_MIRROR}")
    print(f"  - Smoothing alpha: {cfg.SMOOTH_ALPHA}")
    print(f"  - Scale: floor={cfg.SCALE_FLOOR} coeff={cfg.SCALE_COEFF} rest={cfg.REST_SCALE}")
    print(f"  - Rotation damping: {cfg.ROTATION_DAMPING}, Fixed depth: {cfg.FIXED_DEPTH}")
    print(f"  - Idle debounce: {cfg.IDLE_DEBOUNCE} frames, Shortest-path roll: {'Enabled' if cfg.SHORTEST_ANGLE else 'Disabled'}")
    print(f"  - Sprite: {cfg.GLASSES_PNG if cfg.GLASSES_PNG else 'Not configured (vector glasses)'}")
    print("="*70 + "\n")
    try:
        app.run(host=cfg.HOST, port=cfg.PORT, threaded=True)
    finally:
        if source is not None:
            source.release()
