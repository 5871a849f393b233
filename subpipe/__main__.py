import sys

from subpipe.cli.main import main

sys.exit(main())
