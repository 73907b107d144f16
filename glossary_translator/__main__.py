import sys

from glossary_translator.cli import main

sys.exit(main())
