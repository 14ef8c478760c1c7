import sys

from auh.cli import main

sys.exit(main())
