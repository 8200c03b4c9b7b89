"""Bundled data files for hvclean."""
