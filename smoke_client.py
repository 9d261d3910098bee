"""Manual smoke test against a running relay (python -m livechat)."""
import asyncio
import json
import sys

import websockets

URL = sys.argv[1] if len(sys.argv) > 1 else "ws://localhost:3000/ws"


async def main():
    async with websockets.connect(URL) as ws:
        await ws.send(json.dumps({"event": "user:join", "data": {"name": "smoke-test"}}))

        # welcome, users:list, messages:history
        for _ in range(3):
            frame = json.loads(await ws.recv())
            print(f"{frame['event']}: {frame['data']}")

        await ws.send(json.dumps({"event": "message:send", "data": {"text": "Hello from Python!"}}))

        frame = json.loads(await ws.recv())
        print(f"{frame['event']}: {frame['data']}")


asyncio.run(main())
