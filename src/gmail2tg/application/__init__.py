"""Application layer - ports, text extraction and use cases."""
