"""Extract, scan, and repack a compressed archive through a throwaway workspace."""

__version__ = "0.1.0"
