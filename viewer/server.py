import asyncio
import json
from aiohttp import web

from gestures import latch_from_params
from params import Params, _pget
from swarm import make_simulator

CLIENTS = web.AppKey("clients", set)
LATCH = web.AppKey("latch", object)
SIM = web.AppKey("sim", object)
PARAMS = web.AppKey("params", object)


async def ws_handler(request):
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    clients = request.app[CLIENTS]
    clients.add(ws)
    print("Viewer connected:", len(clients))

    try:
        async for _ in ws:
            pass
    finally:
        clients.discard(ws)
        print("Viewer disconnected:", len(clients))

    return ws


async def _broadcast(app, data: dict):
    clients = app[CLIENTS]
    if not clients:
        return
    payload = json.dumps(data)
    dead = []
    for ws in list(clients):
        try:
            await ws.send_str(payload)
        except ConnectionResetError:
            dead.append(ws)
    for ws in dead:
        clients.discard(ws)


def _state_json(state):
    return {"is_grab": state.is_grab, "hand_x": state.hand_x}


async def post_hand(request):
    try:
        data = await request.json()
    except json.JSONDecodeError:
        raise web.HTTPBadRequest(text="body must be JSON")
    if not isinstance(data, dict) or "landmarks" not in data:
        raise web.HTTPBadRequest(text="missing 'landmarks'")

    latch = request.app[LATCH]
    try:
        state = latch.update(data["landmarks"])
    except (ValueError, TypeError, IndexError) as e:
        raise web.HTTPBadRequest(text=f"bad landmarks: {e}")

    return web.json_response({"ok": True, "state": _state_json(state), "viewers": len(request.app[CLIENTS])})


async def get_state(request):
    return web.json_response({"state": _state_json(request.app[LATCH].state), "frame": request.app[SIM].frame})


async def step_once(app):
    """One render tick: advance with the latched gesture and push the frame to viewers."""
    buf = app[SIM].advance(app[LATCH].state)
    await _broadcast(app, buf.to_payload())
    return buf


async def _tick_loop(app):
    period = 1.0 / float(_pget(app[PARAMS], "viewer_fps", 60.0))
    while True:
        try:
            await step_once(app)
        except Exception as e:
            print(f"⚠️  Swarm tick failed: {e}")
        await asyncio.sleep(period)


async def _ticker(app):
    task = None
    if float(_pget(app[PARAMS], "viewer_fps", 60.0)) > 0:
        task = asyncio.create_task(_tick_loop(app))
    yield
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def create_app(params=None, rng=None):
    params = params or Params()

    app = web.Application()
    app[PARAMS] = params
    app[CLIENTS] = set()
    app[LATCH] = latch_from_params(params)
    app[SIM] = make_simulator(params, rng=rng)

    app.router.add_get("/ws", ws_handler)
    app.router.add_post("/hand", post_hand)
    app.router.add_get("/state", get_state)
    app.cleanup_ctx.append(_ticker)
    return app


if __name__ == "__main__":
    p = Params()
    web.run_app(create_app(p), host=p.viewer_host, port=p.viewer_port)
