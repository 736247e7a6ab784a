"""Validators module for the docmapper pipeline.

This module contains file classification checks including container
detection, processability and extraction path selection.
"""

from .validators import FileValidator

__all__ = ["FileValidator"]
