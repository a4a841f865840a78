"""Shared type definitions for bootc_imagegen.

This module contains enums shared across subpackages to avoid
circular imports.
"""

from enum import Enum


class BuildStatus(str, Enum):
    """Status of a disk image build."""

    CREATING = "creating"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class ImageType(str, Enum):
    """Disk image formats produced by bootc-image-builder."""

    QCOW2 = "qcow2"
    AMI = "ami"
    RAW = "raw"
    ISO = "iso"


__all__ = ["BuildStatus", "ImageType"]
