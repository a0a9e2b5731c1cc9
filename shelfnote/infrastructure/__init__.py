"""Infrastructure layer: storage, security and process-local caches."""
