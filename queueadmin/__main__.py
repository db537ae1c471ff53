"""Allow ``python -m queueadmin``."""

from queueadmin.cli import main

main()
