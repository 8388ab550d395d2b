import threading
import cv2

from gestures import LatestGesture


def first_hand(result):
    if not result:
        return None
    return result[0]


class InferenceWorker:
    """
    Runs capture + hand tracking on its own thread and publishes the latest
    gesture into a LatestGesture slot. The render loop never waits on it.

    Once started the worker owns the capture handle and the tracker and
    releases both when its thread exits, so nothing closes them mid-read.
    """

    def __init__(self, cap, tracker, latch, slot: LatestGesture, mirror: bool = True):
        self.cap = cap
        self.tracker = tracker
        self.latch = latch
        self.slot = slot
        self.mirror = mirror

        self._frame = None
        self._frame_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = None

    def start(self):
        if self._thread and self._thread.is_alive():
            return

        def worker():
            print("✅ Inference thread started")
            try:
                while not self._stop.is_set():
                    ok, frame = self.cap.read()
                    if not ok:
                        break
                    if self.mirror:
                        frame = cv2.flip(frame, 1)
                    state = self.latch.update(first_hand(self.tracker.process(frame)))
                    self.slot.put(state)
                    with self._frame_lock:
                        self._frame = frame
            finally:
                self._stop.set()
                self.cap.release()
                close = getattr(self.tracker, "close", None)
                if callable(close):
                    close()

        self._thread = threading.Thread(target=worker, daemon=True)
        self._thread.start()

    def stop(self, timeout=None) -> bool:
        """Signal the thread and wait for it. True once it has exited."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            return not self._thread.is_alive()
        return True

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    def latest_frame(self):
        with self._frame_lock:
            return self._frame
