"""
DOCX Question Parser
====================
Converts word-processing documents containing numbered exam questions
into a structured question list, with diagnostics for content that could
not be parsed confidently.

Architecture:
    - Line Extractor: Renders .docx paragraphs as inline markup lines
    - Block Segmenter: Groups lines into question blocks by numbering prefix
    - Numbering Auditor: Flags duplicate and missing question numbers
    - Block Classifier: State machine splitting a block into stem, choices, answer
    - Question Builder: Produces the output record and per-block diagnostics
    - Diagnostics Aggregator: Per-document statistics

Version: 1.0.0
"""

__version__ = "1.0.0"
