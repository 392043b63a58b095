"""HTTP test-step engine: build a request step by step, send it, assert on the response."""

__version__ = "0.1.0"
