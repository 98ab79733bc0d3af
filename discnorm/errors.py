"""Error taxonomy shared by the conversion pipeline and catalog verification."""


class DiscnormError(Exception):
    """Base exception for discnorm errors."""
    pass


class ParsingError(DiscnormError):
    """Malformed CUE, CCD or DAT input."""
    pass


class ExtractionError(DiscnormError):
    """A single unwrap/transcode step failed; the file stays unprocessed."""
    pass


class CommandError(ExtractionError):
    """External tool exited unsuccessfully."""

    def __init__(self, message: str, returncode: int = 1, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class CommandTimeoutError(CommandError):
    """External tool exceeded its time budget and was killed."""
    pass


class VerificationError(DiscnormError):
    """Dump content does not match the catalog."""
    pass


class CueMismatchError(VerificationError):
    """Tracks verified but the cue sheet differs from the catalog under strict checking."""
    pass


class FatalPipelineError(DiscnormError):
    """Aborts the current disc group (nothing processable, or output exists)."""
    pass


class GuardError(DiscnormError):
    """A precondition on a path or value failed."""
    pass
