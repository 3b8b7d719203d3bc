"""Copy MongoDB index definitions from one database to another."""

__version__ = "1.0.0"
