import sys

from bibo.cli import main

sys.exit(main())
