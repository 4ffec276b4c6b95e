"""Run the Zaplytics CLI as ``python -m cli analyze EVENTS.jsonl --user PUBKEY``."""

from __future__ import annotations

import sys

from cli.main import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
