import cv2

import mediapipe as mp

from gestures import HandLandmarks


class Hands:
    """
    MediaPipe hands wrapper.

    Returns:
      [HandLandmarks, ...] in normalized image coords, or None when no hand
      is visible.
    """

    def __init__(self, max_hands=1, det_conf=0.5, track_conf=0.5):
        self.max_hands = max_hands
        self.mp_hands = mp.solutions.hands
        self.hands = self.mp_hands.Hands(
            static_image_mode=False,
            max_num_hands=max_hands,
            model_complexity=0,
            min_detection_confidence=float(det_conf),
            min_tracking_confidence=float(track_conf),
        )

    def process(self, frame_bgr):
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

        # Fixes NORM_RECT without IMAGE_DIMENSIONS warning
        self.hands._image_width, self.hands._image_height = frame_bgr.shape[1], frame_bgr.shape[0]  # type: ignore[attr-defined]

        res = self.hands.process(frame_rgb)

        if not res.multi_hand_landmarks:
            return None

        return [HandLandmarks.from_points(hand_lms.landmark) for hand_lms in res.multi_hand_landmarks]

    def close(self):
        self.hands.close()
