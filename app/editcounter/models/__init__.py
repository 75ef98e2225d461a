from __future__ import annotations

from .project import Project

__all__ = ["Project"]
