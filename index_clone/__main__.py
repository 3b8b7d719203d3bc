import sys

from index_clone.cli import main

sys.exit(main())
