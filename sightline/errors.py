# Error taxonomy for the detection / depth pipeline


class SightlineError(Exception):
    """Base class for all pipeline errors."""
    recovery_suggestion = ""

    def __init__(self, details=""):
        super().__init__(details or self.__class__.__doc__)
        self.details = details


class ModelLoadError(SightlineError):
    """Failed to load the detection model."""
    recovery_suggestion = "Check that the inference service is running and the model file is present."


class InferenceError(SightlineError):
    """A single inference request failed."""
    recovery_suggestion = "Transient; the next frame will be retried."


class SessionInterruptedError(SightlineError):
    """The camera / depth session was interrupted."""
    recovery_suggestion = "Tracking resumes automatically when frames arrive again."


class ConfigError(SightlineError, ValueError):
    """Invalid configuration value."""
    recovery_suggestion = "Fix the offending key in the tuning file."
