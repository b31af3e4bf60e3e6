import os

HERE = os.path.dirname(os.path.abspath(__file__))


def env_bool(name, default="0"):
    return os.environ.get(name, default).strip().lower() in ("1","true","yes","on","y")

def env_float(name, default):
    return float(os.environ.get(name, str(default)))

def env_int(name, default):
    return int(os.environ.get(name, str(default)))


# Capture
CAM_INDEX = env_int("CAM_INDEX", 0)
W_CAP = env_int("CAP_W", 640)
H_CAP = env_int("CAP_H", 480)
H_MIRROR = env_bool("H_MIRROR", "1")

# Smoothing factor per frame: low = smoother but laggier, high = responsive but jittery
SMOOTH_ALPHA = env_float("SMOOTH_ALPHA", 0.1)

# Target pose
SCALE_FLOOR = env_float("SCALE_FLOOR", 0.05)
SCALE_COEFF = env_float("SCALE_COEFF", 0.0035)     # render scale per pixel of eye distance
ROTATION_DAMPING = env_float("ROTATION_DAMPING", 0.5)
FIXED_DEPTH = env_float("FIXED_DEPTH", -0.5)
POS_SCALE_X = env_float("POS_SCALE_X", 0.5)
POS_SCALE_Y = env_float("POS_SCALE_Y", 0.3)

# Rest pose
REST_X = env_float("REST_X", 0.0)
REST_Y = env_float("REST_Y", 0.0)
REST_ROTATION = env_float("REST_ROTATION", 0.0)
REST_SCALE = env_float("REST_SCALE", 0.1)

# Extensions, both off by default
IDLE_DEBOUNCE = env_int("IDLE_DEBOUNCE", 0)        # absent frames held before returning to rest
SHORTEST_ANGLE = env_bool("SHORTEST_ANGLE", "0")

# Overlay
GLASSES_PNG = os.environ.get("GLASSES_PNG", "")
GLASSES_WIDTH_FACTOR = env_float("GLASSES_WIDTH", 2.2)
SHOW_HUD = env_bool("SHOW_HUD", "1")
JPEG_QUALITY = env_int("JPEG_QUALITY", 80)

# Diagnostics
TRACK_DEBUG = env_bool("TRACK_DEBUG", "0")
PERF_LOG = env_bool("PERF_LOG", "0")

# Server
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = env_int("PORT", 5000)
