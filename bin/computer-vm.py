#!/usr/bin/env python3
"""Run computer-vm from a source checkout without installing it."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from computer_vm.main import main

if __name__ == "__main__":
    main()
