"""Live terminal dashboard for a memcached server."""

__version__ = "0.1.0"
