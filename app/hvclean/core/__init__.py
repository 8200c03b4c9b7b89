"""Core infrastructure for hvclean: paths, configuration and theming."""
