"""mediaproc - plugin-based media processing CLI."""

__app_name__ = "mediaproc"
__version__ = "0.3.0"

__all__ = ["__app_name__", "__version__"]
