# tools/run_probe.py
# Usage examples:
#   sudo python3 -m tools.run_probe 2001:db8::1
#   sudo python3 -m tools.run_probe fe80::1 --iface eth0 --timeout 0.5 -v
#   python3 -m tools.run_probe fake

import argparse
import ipaddress
import json
import logging
import os
import sys

from nodeinfo.config import Settings
from nodeinfo.engine.collector import NodeInfoCollector
from nodeinfo.engine.formatter import format_results

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
logger = logging.getLogger("run_probe")

FAKE_TARGET = "2001:db8::1"


def is_admin():
    try:
        return os.geteuid() == 0
    except AttributeError:
        return False


def validate_target(target):
    try:
        return isinstance(ipaddress.ip_address(target), ipaddress.IPv6Address)
    except ValueError:
        return False


def build_settings(args):
    return Settings(
        per_host_timeout=args.timeout,
        timeout_multiplier=args.multiplier,
        iface=args.iface,
        source=args.source,
        hop_limit=args.hop_limit,
    )


def report(state):
    out = state.summary()
    out["results"] = format_results(state.results)
    print(json.dumps(out, indent=2))


def run_with_fake(args):
    from nodeinfo.transport.fake import FakeTransport, scripted_replies
    t = FakeTransport(script=scripted_replies())
    ctrl = NodeInfoCollector(t, build_settings(args), clock=t.clock)
    report(ctrl.run(FAKE_TARGET))


def run_with_raw(args):
    from nodeinfo.transport.raw import RawTransport
    t = RawTransport(iface=args.iface)
    ctrl = NodeInfoCollector(t, build_settings(args))
    try:
        state = ctrl.run(args.target)
    except PermissionError as e:
        logger.critical("Permission error: %s. Raw sockets need root.", e)
        return 1
    except OSError as e:
        logger.critical("OS error while probing %s: %s", args.target, e)
        return 1
    report(state)
    return 0


def build_argparser():
    ap = argparse.ArgumentParser(description="ICMPv6 Node Information probe (RFC 4620)")
    ap.add_argument("target", nargs="?", help="IPv6 address of the host (or 'fake' to use FakeTransport)")
    ap.add_argument("--timeout", type=float, default=1.0, help="Per-host timeout in seconds")
    ap.add_argument("--multiplier", type=int, default=10, help="Total wait is timeout times this")
    ap.add_argument("--iface", default=None, help="Interface to send and capture on")
    ap.add_argument("--source", default=None, help="Local IPv6 source address (default: route lookup)")
    ap.add_argument("--hop-limit", type=int, default=64, help="IPv6 hop limit of the queries")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def main(argv=None):
    ap = build_argparser()
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    if args.target == "fake":
        run_with_fake(args)
        return 0
    if not args.target:
        ap.error("Provide an IPv6 target (e.g., 2001:db8::1) or 'fake'")
    if not validate_target(args.target):
        ap.error(f"Not an IPv6 address: {args.target}")
    if not is_admin():
        logger.critical("Sending raw ICMPv6 needs root privileges.")
        return 1
    return run_with_raw(args)


if __name__ == "__main__":
    sys.exit(main())
