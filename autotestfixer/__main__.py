import sys

from autotestfixer.cli.fixer_cli import main

sys.exit(main())
