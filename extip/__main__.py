from __future__ import annotations
import argparse
import json
import logging
import sys

from .config import DataSourceConfig, load_settings
from .logging_config import configure_logging
from .provider import Provider
from .resolver import ExtIPError


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="extip", description="Look up the external IP address of this host")
    p.add_argument("--env", dest="env_path", help="Path to .env file", default=None)
    p.add_argument("--resolver", dest="resolver", help="URL returning the caller's IP as plain text")
    p.add_argument("--timeout", dest="client_timeout", type=int, help="Request timeout in ms (0 waits forever)")
    p.add_argument("--validate-ip", dest="validate_ip", action="store_true", help="Fail unless the response is an IP address")
    p.add_argument("--no-validate-ip", dest="validate_ip", action="store_false", help="Accept any response body")
    p.set_defaults(validate_ip=None)
    p.add_argument("--json", dest="as_json", action="store_true", help="Print id and ipaddress as JSON")
    p.add_argument("--verbose", action="store_true", help="Verbose output")
    return p


def _apply_overrides(config: DataSourceConfig, args: argparse.Namespace) -> DataSourceConfig:
    return DataSourceConfig(
        resolver=args.resolver or config.resolver,
        client_timeout=config.client_timeout if args.client_timeout is None else args.client_timeout,
        validate_ip=config.validate_ip if args.validate_ip is None else args.validate_ip,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = _apply_overrides(load_settings(args.env_path), args)
    except ValueError as e:  # configuration error
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    provider = Provider()
    try:
        result = provider.read(config)
    except KeyboardInterrupt:
        if args.verbose:
            print("Interrupted", file=sys.stderr)
        return 130
    except ExtIPError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.as_json:
        print(json.dumps({"id": result.id, "ipaddress": result.ipaddress}))
    else:
        # raw non-UTF-8 bytes from the resolver are shown as \xNN escapes
        print(result.ipaddress.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace"))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
