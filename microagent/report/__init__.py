"""Report rendering (text, JSON, markdown)."""
