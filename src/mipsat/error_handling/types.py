class MipSatError(Exception):
    """Base exception for all mipsat errors"""
    pass

class InvalidConfigError(MipSatError):
    """
    Raised when solver configuration cannot be decoded or falls outside its allowed range

    This is the only error that leaves solve_request as an exception - every other outcome is reported through the response status
    """

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)

class PipelineInvariantError(MipSatError):
    """
    Raised when two pipeline stages disagree on something they must agree on (e.g. variable count)

    Indicates a bug in the pipeline, never a problem with the caller's input
    """

    def __init__(self, stage: str, expected: int, actual: int):
        self.stage = stage
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Pipeline invariant violated at {stage}: expected {expected} variables, got {actual}"
        )
