"""Build PDF documents from video frames taken at chosen timestamps."""

__version__ = "0.1.0"
__all__ = ["__version__"]