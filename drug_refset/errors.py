"""Fatal error taxonomy for the refset pipeline.

Every fatal condition derives from ``PipelineError`` so that the single
entry point in ``drug_refset.main`` can turn it into an exit code. Content
quality problems (missing terms, naming collisions) are not exceptions;
they are collected on the pipeline report instead.
"""


class PipelineError(Exception):
    """Base class for errors that halt the whole pipeline."""


class PreconditionError(PipelineError):
    """Credentials or an upstream dependency are missing."""


class DataIntegrityError(PipelineError):
    """An RF2 row contradicts an assumption the parser relies on."""


class ExternalLookupFailure(PipelineError):
    """A round of remote concept lookups failed.

    Rerunning the pipeline is safe: resolved concepts are already cached.
    """


class ReleaseNotFoundError(PipelineError):
    """No downloadable release was found on the TRUD releases page."""


class ReleaseFileMissingError(PipelineError):
    """An expected RF2 file is absent from the extracted release."""
