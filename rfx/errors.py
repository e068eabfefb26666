class PipelineError(Exception):
    """Base class for errors that abort a pipeline run.

    ``stage`` names the pipeline stage the error belongs to so the caller can
    report where the run stopped.
    """

    stage = "pipeline"


class LoadError(PipelineError):
    """The input file is missing, empty or cannot be parsed."""

    stage = "load"


class ConfigError(PipelineError, ValueError):
    """Invalid configuration, or filtering left nothing to work with."""

    stage = "config"


class TrainingError(PipelineError):
    """Fitting the model failed."""

    stage = "train"


class RenderError(PipelineError):
    """A result could not be rendered or written to disk."""

    stage = "render"
