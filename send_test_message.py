#!/usr/bin/env python3
"""Send one test message to the Event Hub configured in config.yaml (or the local emulator)"""

import sys

from eventhub_sender.sender import main

if __name__ == "__main__":
    sys.exit(main())
