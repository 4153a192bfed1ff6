from __future__ import annotations

import argparse, os, signal, sys, time
from typing import Any, Dict, List, Optional

from loguru import logger

from irxr.client import NetClient
from irxr.config import load_config, with_env_overrides
from irxr.errors import IRXRError

DEFAULT_HOST = "irxr-cli"
DEFAULT_WAIT_S = 5.0

def _config(ns: argparse.Namespace) -> Dict[str, Any]:
    cfg: Dict[str, Any] = load_config(ns.config) if ns.config else {}
    cfg = with_env_overrides(cfg, "IRXR_")
    cfg["host"] = ns.host or cfg.get("host") or os.environ.get("IRXR_HOST", DEFAULT_HOST)
    for key in ("discovery_port", "service_port", "topic_port", "client_topic_port"):
        val = getattr(ns, key, None)
        if val is not None:
            cfg[key] = val
    cfg.pop("tick_hz", None)
    return cfg

def _mk_client(ns: argparse.Namespace) -> NetClient:
    client = NetClient.from_config(_config(ns))
    if not client.wait_for_server(timeout_s=ns.wait):
        client.close()
        raise IRXRError(f"no SimPub server announced itself within {ns.wait}s")
    return client

def cmd_req(ns: argparse.Namespace) -> int:
    client: Optional[NetClient] = None
    try:
        client = _mk_client(ns)
        print(client.request_string(ns.service, ns.data or "", timeout_s=ns.timeout))
        return 0
    except KeyboardInterrupt:
        return 130
    except (IRXRError, OSError) as ex:
        print(f"irxr-cli req: {ex}", file=sys.stderr)
        return 2
    finally:
        if client:
            client.close()

def cmd_pub(ns: argparse.Namespace) -> int:
    client: Optional[NetClient] = None
    try:
        client = _mk_client(ns)
        client.create_topic(ns.topic)
        # give the server a moment to connect its subscriber to our publisher
        time.sleep(ns.settle)
        client.publish_string(ns.topic, ns.payload)
        print(f"[irxr pub] {ns.topic}: {ns.payload}")
        return 0
    except KeyboardInterrupt:
        return 130
    except (IRXRError, OSError) as ex:
        print(f"irxr-cli pub: {ex}", file=sys.stderr)
        return 2
    finally:
        if client:
            client.close()

def cmd_sub(ns: argparse.Namespace) -> int:
    topics: List[str] = ns.topics
    if not topics:
        print("sub: provide at least one topic", file=sys.stderr)
        return 2

    stop = False

    def on_sig(_s, _f):
        nonlocal stop; stop = True

    signal.signal(signal.SIGINT, on_sig)
    signal.signal(signal.SIGTERM, on_sig)

    client: Optional[NetClient] = None
    try:
        client = NetClient.from_config(_config(ns))
        for t in topics:
            client.subscribe_topic(t, lambda payload, _t=t: print(f"{_t}: {payload}", flush=True))
        client.on_disconnected.add(lambda _c: print("[irxr sub] server lost, waiting", file=sys.stderr))

        print(f"[irxr sub] up: host={client.host} topics={topics}")
        period = 1.0 / ns.tick_hz
        while not stop:
            client.tick()
            time.sleep(period)
        return 0
    except KeyboardInterrupt:
        return 130
    except (IRXRError, OSError) as ex:
        print(f"irxr-cli sub: {ex}", file=sys.stderr)
        return 2
    finally:
        if client:
            client.close()
        print("[irxr sub] stopped")

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="irxr-cli",
        description="Simple IRXR CLI: call a server service, publish, or subscribe to topics."
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    def common(p):
        p.add_argument("--host", help=f"Local host name sent on Register (default: {DEFAULT_HOST} or $IRXR_HOST)")
        p.add_argument("-c", "--config", help="Optional JSON/YAML config (section 'irxr')")
        p.add_argument("--discovery-port", type=int, help="UDP discovery port (default 7720)")
        p.add_argument("--service-port", type=int, help="Server service port (default 7721)")
        p.add_argument("--topic-port", type=int, help="Server topic port (default 7722)")
        p.add_argument("--client-topic-port", type=int, help="Local publisher port (default 7724)")
        p.add_argument("--wait", type=float, default=DEFAULT_WAIT_S,
                       help=f"Seconds to wait for a server announcement (default {DEFAULT_WAIT_S})")
        p.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")

    pr = sub.add_parser("req", help="Send a service request to the server and print the reply")
    common(pr)
    pr.add_argument("-s", "--service", required=True, help="Service name, e.g. Register")
    pr.add_argument("-d", "--data", help="Request body (default: empty)")
    pr.add_argument("--timeout", type=float, default=None,
                    help="Reply deadline in seconds (default: wait forever)")
    pr.set_defaults(func=cmd_req)

    pp = sub.add_parser("pub", help="Create a topic and publish one message on it")
    common(pp)
    pp.add_argument("topic", help="Topic name")
    pp.add_argument("payload", help="Payload string")
    pp.add_argument("--settle", type=float, default=0.5, help="Seconds to wait before publishing (default 0.5)")
    pp.set_defaults(func=cmd_pub)

    ps = sub.add_parser("sub", help="Subscribe to one or more server topics and print messages")
    common(ps)
    ps.add_argument("topics", nargs="+", help="Topic(s) to subscribe to")
    ps.add_argument("--tick-hz", type=float, default=60.0, help="Tick rate (default 60)")
    ps.set_defaults(func=cmd_sub)

    return ap

def main(argv: Optional[List[str]] = None) -> int:
    ns = build_parser().parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if ns.verbose else "WARNING")
    return ns.func(ns)

if __name__ == "__main__":
    raise SystemExit(main())
