"""Group resolved Maven dependencies into named runtime modules."""

__version__ = "1.0.0"
