"""Feature flag control plane: validated mutations, git history and cached distribution."""

__version__ = "0.1.0"
