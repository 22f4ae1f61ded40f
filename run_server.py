#!/usr/bin/env python3
"""Run the FastAPI server directly."""

import sys
from pathlib import Path

# Add the current directory to Python path
sys.path.insert(0, str(Path(__file__).parent))

from health_server.server import main

if __name__ == "__main__":
    main()
