# app.py - gesture swarm driver
import time
import cv2

from params import Params
from gestures import GestureState, LatestGesture, latch_from_params
from hands import Hands
from inference import InferenceWorker, first_hand
from renderer3d import SwarmRenderer
from swarm import make_simulator

WINDOW_NAME = "Gesture Swarm"

SHOW_CAMERA_INSET = True
SHOW_HUD = True


def open_camera(index=0, max_index=6):
    order = [index] + [i for i in range(max_index) if i != index]
    for i in order:
        cap = cv2.VideoCapture(i)
        if cap.isOpened():
            ok, _ = cap.read()
            if ok:
                print(f"✅ Using camera index: {i}")
                return cap
        cap.release()
    raise RuntimeError(f"❌ No working camera found (0–{max_index-1}).")


def _hud(state: GestureState, fps: float, n: int) -> str:
    mode = "TREE" if state.is_grab else "BURST"
    return f"{mode}  hand_x={state.hand_x:+.2f}  N={n}  FPS {fps:5.1f}"


def main(params=None):
    params = params or Params()

    cap = open_camera(params.camera_index)
    tracker = Hands(max_hands=1)
    latch = latch_from_params(params)

    sim = make_simulator(params)
    renderer = SwarmRenderer(
        width=params.preview_w,
        height=params.preview_h,
        palette=params.palette,
        background=params.background,
        glow=params.glow,
    )

    slot = None
    worker = None
    if params.threaded_inference:
        slot = LatestGesture(latch.state)
        worker = InferenceWorker(cap, tracker, latch, slot)
        worker.start()

    cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)

    print("\n" + "=" * 60)
    print("🌲 GESTURE SWARM")
    print("=" * 60)
    print("   Pinch thumb + index: assemble the tree")
    print("   Open hand: burst into a cloud")
    print("   Move hand left/right: steer rotation")
    print("   R - Reset swarm | ESC - Exit")
    print("=" * 60 + "\n")

    prev = time.time()
    fps_smooth = 0.0

    while True:
        now = time.time()
        dt = max(1e-6, now - prev)
        prev = now
        fps = 1.0 / dt
        fps_smooth = fps if fps_smooth == 0 else 0.9 * fps_smooth + 0.1 * fps

        if worker is not None:
            if not worker.running:
                break
            state = slot.get()
            frame = worker.latest_frame()
        else:
            ok, frame = cap.read()
            if not ok:
                break
            frame = cv2.flip(frame, 1)
            state = latch.update(first_hand(tracker.process(frame)))

        buf = sim.advance(state, dt)

        img = renderer.render(buf, _hud(state, fps_smooth, sim.n) if SHOW_HUD else None)
        if SHOW_CAMERA_INSET:
            img = renderer.inset(img, frame)

        cv2.imshow(WINDOW_NAME, img)

        key = cv2.waitKey(1) & 0xFF
        if key == 27:
            break
        if key in (ord('r'), ord('R')):
            sim.reset()

    if worker is not None:
        # The worker releases the camera and tracker on its way out
        if not worker.stop(timeout=2.0):
            print("⚠️  Inference thread still busy; leaving capture to exit with it")
    else:
        cap.release()
        tracker.close()
    cv2.destroyAllWindows()

    print("\n✅ Swarm shutdown complete")


if __name__ == "__main__":
    main()
