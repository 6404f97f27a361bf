import json
import sys
from dataclasses import asdict

from kdvsim.config.env import configure_logging, get_engine_constants
from kdvsim.engine.parameters import parameters_from_mapping
from kdvsim.engine.pnl import compute_pnl


def parse_pairs(args):
    pairs = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep or not key:
            raise ValueError(f"expected key=value, got '{arg}'")
        pairs[key.strip()] = value.strip()
    return pairs


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    if args and args[0] in ("-h", "--help"):
        print("Usage: kdvsim [field=value ...]   e.g. kdvsim quantity=750 unit_price=899.90")
        return 0
    configure_logging()
    try:
        params = parameters_from_mapping(parse_pairs(args))
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    result = compute_pnl(params, get_engine_constants())
    print(json.dumps({
        "parameters": asdict(params),
        "result": {k: round(v, 2) for k, v in asdict(result).items()},
    }, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
