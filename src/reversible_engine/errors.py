class EngineInvariantError(RuntimeError):
    """
    Raised when the engine detects a corrupted internal invariant, such as an
    entity in a state the transition table does not know. Unlike rejections,
    this is never a business outcome and should not be recovered from.
    """
