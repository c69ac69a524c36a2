"""Click command groups registered on the top-level ``skis`` CLI."""
