"""Cross-cutting infrastructure: config, logging, errors, network status."""
