"""Allow running the relay as: python -m signal_relay [--config path]."""

import argparse

from signal_relay.api.runner import main

parser = argparse.ArgumentParser(description="Trading-signal relay")
parser.add_argument("--config", default=None, help="Path to config.yaml")
args = parser.parse_args()
main(config_path=args.config)
