"""Data models for relmirror."""

from relmirror.models.release import Release, Asset

__all__ = ["Release", "Asset"]
