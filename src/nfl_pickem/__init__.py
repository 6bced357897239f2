"""NFL pick'em score sync, pick scoring and refresh scheduling."""
