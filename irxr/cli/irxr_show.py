from __future__ import annotations
import argparse, json, sys, time
from typing import Any, Dict, List, Optional

from loguru import logger

from irxr.config import ServerPort, load_config, with_env_overrides
from irxr.discovery import DiscoveryListener, UdpDiscoverySocket
from irxr.info import HostInfo

def wait_for_announcement(listener: DiscoveryListener, timeout_s: float, poll_s: float = 0.02) -> Optional[HostInfo]:
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        info = listener.poll()
        if info is not None:
            return info
        time.sleep(poll_s)
    return None

def format_info(info: HostInfo) -> List[str]:
    lines = [f"name:     {info.name}", f"ip:       {info.ip}"]
    lines += [f"topic:    {t}" for t in info.topics]
    lines += [f"service:  {s}" for s in info.services]
    return lines

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="irxr-show", description="Show the identity a SimPub server announces")
    ap.add_argument("-c", "--config", help="Optional JSON/YAML config (reads discovery_port)")
    ap.add_argument("--port", type=int, help=f"UDP discovery port (default {int(ServerPort.DISCOVERY)})")
    ap.add_argument("--timeout", type=float, default=5.0, help="Seconds to wait (default: 5.0)")
    ap.add_argument("--json", action="store_true", help="Output raw JSON instead of lines")
    ns = ap.parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="WARNING")

    cfg: Dict[str, Any] = with_env_overrides(load_config(ns.config), "IRXR_") if ns.config else with_env_overrides({}, "IRXR_")
    port = ns.port or int(cfg.get("discovery_port") or ServerPort.DISCOVERY)

    listener = None
    try:
        listener = DiscoveryListener(UdpDiscoverySocket(port))
        info = wait_for_announcement(listener, ns.timeout)
        if info is None:
            print(f"irxr-show: no announcement on UDP {port} within {ns.timeout}s", file=sys.stderr)
            return 2
        if ns.json:
            print(json.dumps(info.to_dict(), indent=2, sort_keys=True))
        else:
            for line in format_info(info):
                print(line)
        return 0
    except OSError as ex:
        print(f"irxr-show: {ex}", file=sys.stderr)
        return 2
    finally:
        if listener is not None:
            listener.close()

if __name__ == "__main__":
    raise SystemExit(main())
