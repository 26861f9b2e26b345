import sys

from bochi.cli import main

sys.exit(main())
