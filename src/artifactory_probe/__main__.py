"""Allow ``python -m artifactory_probe``."""

from artifactory_probe.cli.main import main

main()
