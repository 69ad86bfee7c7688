import sys

from netprecheck.cli import main

sys.exit(main())
