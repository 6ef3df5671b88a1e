"""Packaged sample curriculum and offline content pool."""
