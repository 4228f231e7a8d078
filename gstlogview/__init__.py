"""GStreamer log viewer: session store, filters and timeline aggregation."""

__version__ = "0.1.0"
