from __future__ import annotations
import math
import numpy as np
import cv2


def hex_to_bgr(color: str):
    c = color.lstrip("#")
    r, g, b = int(c[0:2], 16), int(c[2:4], 16), int(c[4:6], 16)
    return (b, g, r)


class SwarmRenderer:
    """Lightweight preview: projects the swarm buffer as glowing dots."""

    def __init__(self, width: int = 960, height: int = 720, palette=None, background: str = "#050103",
                 camera_z: float = 12.0, fov_deg: float = 60.0, glow: bool = True):
        self.width = int(width)
        self.height = int(height)
        self.camera_z = float(camera_z)
        self.focal = (self.height * 0.5) / math.tan(math.radians(fov_deg) * 0.5)
        self.glow = bool(glow)
        self.background = hex_to_bgr(background)
        self.palette = [hex_to_bgr(c) for c in (palette or ["#FFB7C5", "#FF69B4", "#FFFFFF"])]

    def project(self, pts: np.ndarray):
        """World (N,3) -> pixel x, pixel y, depth. Camera on +z looking at the origin."""
        zz = self.camera_z - pts[:, 2]
        zz = np.maximum(zz, 1e-3)
        sx = self.width * 0.5 + (pts[:, 0] / zz) * self.focal
        sy = self.height * 0.5 - (pts[:, 1] / zz) * self.focal
        return sx, sy, zz

    def render(self, buffer, hud_text: str | None = None):
        img = np.empty((self.height, self.width, 3), dtype=np.uint8)
        img[:] = self.background

        pts = buffer.world_positions()
        sx, sy, zz = self.project(pts)
        radius = np.maximum(1, (buffer.scales * self.focal / zz).astype(np.int32))

        # Far to near so closer particles land on top
        order = np.argsort(-zz)
        n_colors = len(self.palette)
        for i in order:
            if zz[i] <= 1e-3:
                continue
            cv2.circle(img, (int(sx[i]), int(sy[i])), int(radius[i]), self.palette[i % n_colors], -1, cv2.LINE_AA)

        if self.glow:
            blur = cv2.GaussianBlur(img, (0, 0), 6)
            img = cv2.addWeighted(img, 0.9, blur, 0.6, 0)

        if hud_text:
            cv2.putText(img, hud_text, (12, 28), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (197, 183, 255), 2, cv2.LINE_AA)
        return img

    def inset(self, img, frame_bgr, width: int = 160):
        """Mirrored camera preview in the bottom-left corner."""
        if frame_bgr is None:
            return img
        h0, w0 = frame_bgr.shape[:2]
        height = int(width * h0 / max(1, w0))
        small = cv2.resize(frame_bgr, (width, height), interpolation=cv2.INTER_AREA)
        y0 = img.shape[0] - height - 16
        x0 = 16
        if y0 < 0 or x0 + width > img.shape[1]:
            return img
        img[y0:y0 + height, x0:x0 + width] = small
        cv2.rectangle(img, (x0 - 1, y0 - 1), (x0 + width, y0 + height), hex_to_bgr("#FF69B4"), 2, cv2.LINE_AA)
        return img
