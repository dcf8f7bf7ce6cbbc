"""Application layer: use cases and the error taxonomy they raise."""
