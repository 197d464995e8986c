"""Report engine exceptions."""


class ReportError(Exception):
    """Base class for report generation errors."""
    pass


class ClientInputError(ReportError):
    """Required top-level request fields are missing or malformed (HTTP 400)."""
    pass


class AttachmentUnavailable(ReportError):
    """A referenced file could not be signed, fetched or read.

    Raised and absorbed inside the attachment resolver; never reaches callers.
    """
    pass


class SubDocumentMergeFailure(ReportError):
    """An embeddable sub-document could not be parsed for merging."""
    pass


class ComposerFatal(ReportError):
    """Unexpected failure while laying out or rendering a document (HTTP 500)."""
    pass
