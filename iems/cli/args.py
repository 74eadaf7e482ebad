# iems/cli/args.py
from __future__ import annotations

import argparse
from typing import Dict, List, Optional

from iems.protocol.defs import OutputId, SourceChoice


def parse_param(text: str) -> tuple[str, str]:
    """'name=value' -> (name, value). Values stay strings; the transport resolver casts them."""
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Invalid transport param '{text}' (use name=value)")
    return name.strip(), value.strip()


def params_to_overrides(params: Optional[List[tuple[str, str]]]) -> Dict[str, str]:
    return dict(params or [])


def output_arg(value: str) -> OutputId:
    v = value.strip().upper()
    if v.startswith("OUT"):
        v = v[3:]
    try:
        return OutputId[v]
    except KeyError:
        raise argparse.ArgumentTypeError(f"Invalid output '{value}' (use A or B)") from None


def source_arg(value: str) -> SourceChoice:
    s = SourceChoice.from_tag(value.strip().lower())
    if s is None:
        raise argparse.ArgumentTypeError(f"Invalid source '{value}' (use solar or grid)")
    return s


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="iems", description="IEMS energy-management device link")
    parser.add_argument("--config", default=None, help="Config file (default: shipped iems/metadata/config.yml).")
    parser.add_argument("--log-file", default=None, help="Also write the application log to this file.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More console logging (-vv for debug).")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_peers = sub.add_parser("peers", help="List paired IEMS devices.")
    p_peers.add_argument(
        "--scan-serial",
        action="store_true",
        help="Also list serial ports that look like Bluetooth SPP links.",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--peer", required=True, help="Paired device address or name (see: iems peers).")
    common.add_argument("--transport", default=None, help="Transport label from the config file.")
    common.add_argument(
        "--param",
        type=parse_param,
        action="append",
        default=None,
        metavar="NAME=VALUE",
        help="Override a transport param (repeatable).",
    )

    p_switch = sub.add_parser("switch", parents=[common], help="Route one output to a source.")
    p_switch.add_argument("--output", type=output_arg, required=True, help="A or B.")
    p_switch.add_argument("--source", type=source_arg, required=True, help="solar or grid.")
    p_switch.add_argument("--wait", type=float, default=0.0, help="Seconds to print device replies afterwards.")

    p_toggle = sub.add_parser("toggle", parents=[common], help="Flip one output to the other source.")
    p_toggle.add_argument("--output", type=output_arg, required=True, help="A or B.")
    p_toggle.add_argument(
        "--from",
        dest="current",
        type=source_arg,
        default=SourceChoice.GRID,
        help="Current source of the output (default: grid).",
    )
    p_toggle.add_argument("--wait", type=float, default=0.0, help="Seconds to print device replies afterwards.")

    p_listen = sub.add_parser("listen", parents=[common], help="Print device reports until interrupted.")
    p_listen.add_argument("--secs", type=float, default=None, help="Stop after N seconds.")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
