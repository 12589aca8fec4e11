"""Run the developer CLI: python -m wayfarer"""

import sys

from .interface.cli import main

sys.exit(main())
