"""CatMatch: spreadsheet line-item matching against a material catalog."""

__version__ = "0.1.0"
