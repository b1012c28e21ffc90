from __future__ import annotations


class PipelineError(Exception):
    """Base class for recoverable failures inside the research pipeline."""


class ModelCallError(PipelineError):
    """The generation model failed or returned unusable output."""


class NonTextContentError(PipelineError):
    """A fetched page is not text (PDF, image, binary download)."""

    def __init__(self, url: str, content_type: str):
        super().__init__(f"Non-text content at {url}: {content_type or 'unknown'}")
        self.url = url
        self.content_type = content_type


class InsufficientContentError(PipelineError):
    """A fetched page yielded too little extractable text."""


class BlockedUrlError(PipelineError):
    """A URL (or a redirect target) points at a local or private network host."""

    def __init__(self, url: str):
        super().__init__(f"Refusing to fetch non-public address: {url}")
        self.url = url
