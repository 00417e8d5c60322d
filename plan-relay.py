#!/usr/bin/env python3
"""
Flight Plan Relay - forwards planner submissions upstream with CORS headers

This is the entry point for the relay package:
  - planrelay/config.py    - Configuration and constants
  - planrelay/server.py    - HTTP server and command line
  - planrelay/forwarder.py - Payload extraction and upstream forwarding
  - planrelay/client.py    - JSON submit with form-data fallback
  - planrelay/utils.py     - Body decoding and multipart helpers
"""

import sys
import os

# Add the project directory to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from planrelay.server import main

if __name__ == "__main__":
    sys.exit(main())
