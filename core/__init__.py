"""Cross-cutting helpers: configuration, logging, exceptions and error handlers."""
