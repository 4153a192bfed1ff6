"""
Minimal SimPub-style server for trying out a client on one machine.

- broadcasts ``SimPub:{...}`` on UDP 7720 every 0.2 s
- answers ``Register`` and ``Echo`` on REP 7721 (Echo replies in two frames)
- publishes ``pose:<n>`` on PUB 7722 ten times a second
"""
from __future__ import annotations
import argparse, json, socket, time
from typing import Dict, Optional

import zmq

from irxr.config import DISCOVERY_TAG, ServerPort


def handle(request: str, clients: Dict[str, dict]):
    service, _, body = request.partition(":")
    if service == "Register":
        info = json.loads(body)
        clients[info.get("name", "?")] = info
        print(f"[SimServer] registered {info.get('name')} at {info.get('ip')} topics={info.get('topics')}")
        return [b"OK"]
    if service == "Echo":
        data = body.encode("utf-8")
        half = len(data) // 2
        return [data[:half], data[half:]]
    return [f"unknown service {service}".encode("utf-8")]


def main(argv: Optional[list] = None) -> int:
    ap = argparse.ArgumentParser(description="Run a minimal SimPub server")
    ap.add_argument("--name", default="SimServer")
    ap.add_argument("--broadcast", default="255.255.255.255")
    ns = ap.parse_args(argv)

    ctx = zmq.Context()
    rep = ctx.socket(zmq.REP); rep.bind(f"tcp://*:{int(ServerPort.SERVICE)}")
    pub = ctx.socket(zmq.PUB); pub.bind(f"tcp://*:{int(ServerPort.TOPIC)}")
    udp = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    udp.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)

    clients: Dict[str, dict] = {}
    announce = f"{DISCOVERY_TAG}:" + json.dumps(
        {"name": ns.name, "ip": "", "topics": ["pose"], "services": ["Register", "Echo"]})
    last_announce = last_pose = 0.0
    n = 0
    print(f"[SimServer] up: name={ns.name}")
    try:
        while True:
            now = time.monotonic()
            if now - last_announce > 0.2:
                udp.sendto(announce.encode("utf-8"), (ns.broadcast, int(ServerPort.DISCOVERY)))
                last_announce = now
            if now - last_pose > 0.1:
                pub.send(f"pose:{n}".encode("utf-8")); n += 1
                last_pose = now
            if rep.poll(10, zmq.POLLIN):
                frames = handle(rep.recv().decode("utf-8"), clients)
                for i, f in enumerate(frames):
                    rep.send(f, zmq.SNDMORE if i < len(frames) - 1 else 0)
    except KeyboardInterrupt:
        pass
    finally:
        udp.close()
        rep.close(0); pub.close(0)
        ctx.term()
        print("[SimServer] stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
