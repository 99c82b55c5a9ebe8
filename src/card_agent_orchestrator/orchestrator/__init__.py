"""Process entrypoints: the CLI and structured logging setup."""
