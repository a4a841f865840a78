"""Disk image build orchestration.

This module handles:
- Build request validation and disk image paths
- Builder container naming and options
- Running the builder through a container runtime
- Progress signals from builder logs
- Build history
"""

from bootc_imagegen.builds.models import BuildRecord
from bootc_imagegen.builds.schema import BuildRequest

__all__ = ["BuildRecord", "BuildRequest"]

# Access submodules directly, e.g. bootc_imagegen.builds.service
