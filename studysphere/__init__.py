"""StudySphere: study-partner matching and shared group workspaces."""

__version__ = "1.0.0"
