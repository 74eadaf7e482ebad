# iems/cli/main.py
from __future__ import annotations

from typing import Optional

from iems.app.config import IemsConfig
from iems.core.errors import IemsError

from iems.cli.args import parse_args
from iems.cli.commands import (
    cmd_listen,
    cmd_peers,
    cmd_switch,
    cmd_toggle,
    configure_logging,
)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(verbosity=args.verbose, log_file=args.log_file)

    try:
        config = IemsConfig.load(args.config)

        if args.cmd == "peers":
            return cmd_peers(config, scan_serial=args.scan_serial)
        if args.cmd == "switch":
            return cmd_switch(args, config)
        if args.cmd == "toggle":
            return cmd_toggle(args, config)
        if args.cmd == "listen":
            return cmd_listen(args, config)

        return 2
    except IemsError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
