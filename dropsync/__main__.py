import sys

from dropsync.main import main

sys.exit(main())
