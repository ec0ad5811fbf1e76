"""Quote financial breakdown and proposal PDF rendering."""

__version__ = "0.1.0"
