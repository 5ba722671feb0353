import sys

from storyloop.cli import main

sys.exit(main())
