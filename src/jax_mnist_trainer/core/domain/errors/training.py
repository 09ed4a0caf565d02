from __future__ import annotations


class TrainingError(Exception):
    """Base class for every fatal condition raised by the core.

    Nothing in the core retries; callers (CLI, tests, pipelines) catch this and report.
    """


class ConfigurationError(TrainingError):
    """Invalid flag values, out-of-range labels or mismatched raw buffers."""


class DataIntegrityError(TrainingError):
    """A one-hot target disagrees with its raw label (bug in the encoding path)."""


class CheckpointError(TrainingError):
    pass


class CorruptCheckpointError(CheckpointError):
    """A checkpoint file exists but cannot be deserialized.

    Distinct from a missing file, which is not an error.
    """


class CheckpointWriteError(CheckpointError):
    pass
