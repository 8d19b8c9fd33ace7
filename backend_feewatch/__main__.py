import sys

from backend_feewatch.cli import main

sys.exit(main())
