"""Assessment definition and runtime engine for applicant tracking."""

__version__ = "0.1.0"

__all__ = ["__version__"]
