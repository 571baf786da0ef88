"""Abstract base class for source text extractors.

An extractor turns a registered source's uri into plain text plus a
content hash.  It is the port through which the pipeline reaches
documents; the file-based implementation lives in
:mod:`klay.providers.extraction`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from klay.models.source import ExtractedContent


class ITextExtractor(ABC):
    """Contract for extracting text from a source uri."""

    @abstractmethod
    async def extract(self, uri: str, mime_type: str) -> ExtractedContent:
        """Read *uri* and return its text.

        Parameters
        ----------
        uri:
            A local path or ``file://`` uri.
        mime_type:
            The MIME type derived from the source type; selects the parser.

        Raises
        ------
        klay.utils.errors.ExtractionError
            If the uri cannot be read or the MIME type is unsupported.
        """

    @abstractmethod
    def supports(self, mime_type: str) -> bool:
        """Return ``True`` if this extractor can parse *mime_type*."""
