"""Services that resolve, extract, deduplicate and store restaurants."""
