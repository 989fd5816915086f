"""Services wrapping accounts, object storage and external lookups."""
