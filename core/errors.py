"""Error taxonomy for the generation pipeline."""


class GenerationPipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class PlanningFailure(GenerationPipelineError):
    """The planner reply could not be turned into a valid task graph. Fatal to the run."""


class CyclicDependencyError(PlanningFailure):
    def __init__(self, remaining):
        self.remaining = list(remaining)
        super().__init__(
            "Dependency cycle between: " + ", ".join(self.remaining)
        )


class FileGenerationError(GenerationPipelineError):
    """A single file could not be generated. The run continues without it."""

    def __init__(self, path, message):
        self.path = path
        super().__init__(f"{path}: {message}")


class MalformedReplyError(FileGenerationError):
    """The model's structured reply failed schema validation."""


class ProviderError(GenerationPipelineError):
    """Base for failures at the model-provider boundary."""


class ProviderUnavailableError(ProviderError):
    """Timeout, connection loss, rate limit or 5xx. Retryable."""


class FatalProviderError(ProviderError):
    """Non-retryable provider failure. Aborts the run."""


class AuthenticationFailure(FatalProviderError):
    pass


class ModelFailure(FatalProviderError):
    pass


class RunCancelled(GenerationPipelineError):
    """The run's output stream was closed; no further model calls are issued."""


class AuthorizationError(GenerationPipelineError):
    """Caller is not authenticated, or does not own the target project."""

    def __init__(self, message, status=401):
        self.status = status
        super().__init__(message)
