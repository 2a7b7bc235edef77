"""Command generation core: API client, response handling, cache and pipeline."""
