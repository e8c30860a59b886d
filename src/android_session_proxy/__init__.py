"""Session bring-up and transparent proxy for Android automation servers."""

__version__ = "0.1.0"
