"""Allow ``python -m acmestore``."""

from acmestore.cli.main import main

main()
