"""
Conversion Errors
=================
Hard failures that abort a conversion. Soft anomalies are never raised;
they are reported as DiagnosticEntry records instead.
"""


class ConversionError(RuntimeError):
    """Base class for conversion failures."""


class InputRejectedError(ConversionError):
    """The input is not a document we accept (wrong type, empty upload)."""


class DocumentDecodeError(ConversionError):
    """The document could not be decoded into paragraphs."""
