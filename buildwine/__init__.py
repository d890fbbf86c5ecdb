# Wine build orchestrator: version-matched patches, dependencies, build and packaging.

__version__ = "1.0.0"
