class Params:
    """
    All tunable knobs live here so you don't hunt through code.
    """
    def __init__(self):
        # Particle count (fixed for the whole run)
        self.num_particles = 4000

        # Gesture
        # Thumb-tip to index-tip distance (normalized image units) that counts as a pinch.
        # Tuned by hand, not derived.
        self.pinch_threshold = 0.08
        # Optional hysteresis band (None = immediate binary threshold)
        self.pinch_release = None

        # Formation chase
        self.lerp_factor = 0.08     # fraction of the remaining distance covered per frame
        self.grab_scale = 0.12      # assembled particles look a bit denser
        self.release_scale = 0.08
        self.spin_step = 0.01       # per-particle local spin per frame (rad)

        # World rotation
        self.idle_rotation = 0.005  # rad per frame
        self.hand_rotation_gain = 0.05

        # Tree (assembled) shape
        self.tree_turns = 16.0      # multiples of pi -> ~8 helical wraps
        self.tree_radius = 2.5
        self.tree_height = 7.0

        # Explosion (dispersed) cloud
        self.dispersed_radius = 12.0

        # Visuals (cosmetic only)
        self.palette = ["#FFB7C5", "#FF69B4", "#FFFFFF"]
        self.background = "#050103"
        self.preview_w = 960
        self.preview_h = 720
        self.glow = True

        # Runtime
        self.backend = "numpy"      # "numpy" | "taichi"
        self.camera_index = 0
        self.threaded_inference = False

        # Web viewer relay
        self.viewer_host = "0.0.0.0"
        self.viewer_port = 8765
        self.viewer_fps = 60.0


def _pget(p, key, default=None):
    if p is None:
        return default
    if isinstance(p, dict):
        return p.get(key, default)
    return getattr(p, key, default)
