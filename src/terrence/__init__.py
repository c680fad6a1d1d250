"""terrence: code-graph query and notification tools for voice agents."""

__version__ = "1.0.0"
