"""File systems sharing one interface: key-value backed, sub-directory views and host OS files."""

__version__ = "0.1.0"