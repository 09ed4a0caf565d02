from .training import (
    CheckpointError,
    CheckpointWriteError,
    ConfigurationError,
    CorruptCheckpointError,
    DataIntegrityError,
    TrainingError,
)

__all__ = [
	"CheckpointError",
	"CheckpointWriteError",
	"ConfigurationError",
	"CorruptCheckpointError",
	"DataIntegrityError",
	"TrainingError",
]
