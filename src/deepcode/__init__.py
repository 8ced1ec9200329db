"""DeepCode agent core: sandboxed workspace tools and budgeted prompt context."""

__version__ = "0.4.0"

__all__ = ["__version__"]
