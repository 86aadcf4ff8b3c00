"""Packaged data files for Region Mesher."""
