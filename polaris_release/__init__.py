"""Release tooling for the Polaris music server."""

__version__ = "0.1.0"
