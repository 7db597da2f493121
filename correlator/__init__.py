"""Alert correlation and attribute deduplication on a keyed conditional store."""
