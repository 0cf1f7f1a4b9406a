from __future__ import annotations

import argparse
import json
import logging

from .bench import run_session
from .client import Client
from .constants import DEFAULT_TIMEOUT_MS, LAST_SEQ, LISTEN_HOST, PORT
from .net import Impairment, UdpEndpoint
from .server import Server


def _impairment(args: argparse.Namespace) -> Impairment:
    return Impairment(args.loss_rate, args.delay_ms, args.seed)


def _emit(payload: dict, as_json: bool) -> None:
    print(json.dumps(payload, indent=2) if as_json else payload)


def cmd_server(args: argparse.Namespace) -> int:
    udp = UdpEndpoint.listening(
        LISTEN_HOST,
        args.port,
        timeout_ms=args.timeout_ms,
        impairment=_impairment(args),
    )
    with udp:
        server = Server(udp)
        stats = server.run()

    _emit({"role": "server", "ranges": server.ledger.ranges_summary(), **stats.as_dict()}, args.json)
    return 0


def cmd_client(args: argparse.Namespace) -> int:
    udp = UdpEndpoint.sending(
        timeout_ms=args.timeout_ms,
        impairment=_impairment(args),
        dest=(args.client, args.port),
    )
    with udp:
        # replies are matched against the resolved numeric address
        client = Client(udp, udp.peer, last_seq=args.count)
        stats = client.run()

    _emit({"role": "client", "ranges": client.ledger.ranges_summary(), **stats.as_dict()}, args.json)
    return 0


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_session(
        count=args.count,
        loss_rate=args.loss_rate,
        delay_ms=args.delay_ms,
        timeout_ms=args.timeout_ms,
        seed=args.seed,
    )
    _emit({"role": "bench", **r.as_dict()}, args.json)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lockstep", description="Lockstep request/echo over UDP.")

    mode = p.add_mutually_exclusive_group(required=True)
    mode.add_argument("-s", "--server", action="store_true", help="run the echo server")
    mode.add_argument("-c", "--client", metavar="HOST", help="run the client against HOST")
    mode.add_argument("--bench", action="store_true", help="run a full session over loopback")

    p.add_argument("--port", type=int, default=PORT)
    p.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS)
    p.add_argument("--count", type=int, default=LAST_SEQ, help=f"last sequence number the client sends (at most {LAST_SEQ})")
    p.add_argument("--loss-rate", type=float, default=0.0, help="simulate datagram loss")
    p.add_argument("--delay-ms", type=int, default=0, help="simulate per-datagram delay")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    p.add_argument("--json", action="store_true")
    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    if not 1 <= args.count <= LAST_SEQ:
        p.error(f"--count must be between 1 and {LAST_SEQ}")
    if not 0.0 <= args.loss_rate < 1.0:
        p.error("--loss-rate must be in [0, 1)")

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")

    if args.server:
        return cmd_server(args)
    if args.client is not None:
        return cmd_client(args)
    return cmd_bench(args)


if __name__ == "__main__":
    raise SystemExit(main())
