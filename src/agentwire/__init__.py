"""agentwire — bridge a marker-protocol agent subprocess to a host application."""

__version__ = "0.1.0"
