"""Skill library: named motion-primitive artifacts with stable ids."""

from library.abstractions import Artifact, DMPParameters, MotionPrimitive, UNASSIGNED_ID
from library.dmp_library import DMPLibrary, LibraryState

__all__ = [
    'Artifact',
    'DMPParameters',
    'MotionPrimitive',
    'UNASSIGNED_ID',
    'DMPLibrary',
    'LibraryState',
]
