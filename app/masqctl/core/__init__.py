"""Core application services for masqctl.

Paths, settings, and theming shared by the CLI and the config engine.
"""
