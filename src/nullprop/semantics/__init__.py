"""Symbols, the compilation (type universe) and the binder."""
