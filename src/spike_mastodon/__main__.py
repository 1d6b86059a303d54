import sys

from .spike import main

sys.exit(main())
