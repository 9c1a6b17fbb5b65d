import sys

from catalog_migration.cli import main

sys.exit(main())
