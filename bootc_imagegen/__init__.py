"""Bootc Image Generator - disk image builds from bootable OS containers.

This package drives the bootc-image-builder container to turn a bootable
OS container image into a disk image (qcow2, ami, raw, iso), and keeps a
history of builds in a local database.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
