"""Refresh units of work and the catalog of sources they cover."""
