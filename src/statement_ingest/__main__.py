import sys

from statement_ingest.runner.main import main

sys.exit(main())
