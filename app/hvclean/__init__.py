"""hvclean - find and remove orphaned Hyper-V virtual machine files."""

__version__ = "0.1.0"
