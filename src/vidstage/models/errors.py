"""Error hierarchy and error response models."""

from pydantic import BaseModel, Field


class VidstageError(Exception):
    """Base error for all vidstage errors.

    ``stage`` names the pipeline stage that was running when the error was
    raised. Components that know their stage set it directly; the
    orchestrator fills it in for the rest before re-raising.
    """

    def __init__(
        self,
        message: str,
        component: str = "",
        details: dict | None = None,
        stage: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.component = component
        self.details = details or {}
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ConfigurationError(VidstageError):
    """Invalid or contradictory request options."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="configuration", details=details)


class FilesystemError(VidstageError):
    """Directory or file I/O failures other than simple absence."""

    def __init__(self, message: str, details: dict | None = None, stage: str | None = None):
        super().__init__(message, component="filesystem", details=details, stage=stage)


class ProbeError(VidstageError):
    """Metadata extraction failed (corrupt, unreadable or unsupported media)."""

    def __init__(self, message: str, details: dict | None = None, stage: str | None = None):
        super().__init__(message, component="probe", details=details, stage=stage)


class TranscodeError(VidstageError):
    """The transcoding engine exited non-zero or timed out."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        stderr_excerpt: str = "",
        timed_out: bool = False,
        stage: str | None = None,
        details: dict | None = None,
    ):
        details = dict(details or {})
        details.update(
            {"exit_code": exit_code, "stderr": stderr_excerpt, "timed_out": timed_out}
        )
        super().__init__(message, component="transcode", details=details, stage=stage)
        self.exit_code = exit_code
        self.stderr_excerpt = stderr_excerpt
        self.timed_out = timed_out


class ProcessingError(VidstageError):
    """Unexpected failure inside the pipeline."""

    def __init__(
        self,
        message: str,
        component: str = "pipeline",
        details: dict | None = None,
        stage: str | None = None,
    ):
        super().__init__(message, component=component, details=details, stage=stage)


class ErrorResponse(BaseModel):
    """Standardized error response for API."""

    error_type: str = Field(..., description="Error category")
    component: str = Field(default="", description="Component that raised the error")
    stage: str | None = Field(default=None, description="Pipeline stage that failed")
    message: str = Field(..., description="Human-readable error message")
    details: dict = Field(default_factory=dict)
    actionable_guidance: str = Field(default="", description="Suggested user action")
    retry_possible: bool = Field(default=False)

    @classmethod
    def from_exception(
        cls, exc: VidstageError, guidance: str = "", retry: bool = False
    ) -> "ErrorResponse":
        return cls(
            error_type=type(exc).__name__,
            component=exc.component,
            stage=exc.stage,
            message=exc.message,
            details=exc.details,
            actionable_guidance=guidance,
            retry_possible=retry,
        )
