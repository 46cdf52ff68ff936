from __future__ import annotations


class ProgrammerError(ValueError):
    """Invalid index, unknown tag or use of a disposed object. Never retried."""


class CapacityExceeded(RuntimeError):
    """A joint, interval or face would exceed its kernel ``*_count_max``."""


class InvariantViolation(RuntimeError):
    """A core invariant could not be upheld (zero-age distance, nonce exhaustion)."""


class SlotExhaustion(RuntimeError):
    """More simulation instances were requested than the kernel holds."""
