"""vpsdeploy - build, deploy and monitor a binary on a VPS over SSH."""

__version__ = "0.1.0"
