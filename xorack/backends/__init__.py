from .base import ConditionFailed, ConditionalStore, RecordExists, RecordNotFound, VersionConflict
from .memory import MemoryBackend, MemoryConfig

__all__ = [
    "ConditionFailed",
    "ConditionalStore",
    "RecordExists",
    "RecordNotFound",
    "VersionConflict",
    "MemoryBackend",
    "MemoryConfig",
]
