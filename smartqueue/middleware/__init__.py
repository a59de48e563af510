"""HTTP middleware: structured logging and error handling."""
