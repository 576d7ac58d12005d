#!/usr/bin/env python3
"""Entry point for running the Pigeon native host from a checkout.

Point the native messaging manifest's "path" at this file (or at the
installed ``pigeon-host`` script). Configuration is read from
~/.config/pigeon/config.yaml unless --config or PIGEON_CONFIG says otherwise.
"""

import sys
from pathlib import Path

# Add src to path so we can import without installing
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from pigeon.cli.host_cli import main


if __name__ == "__main__":
    sys.exit(main())
