"""HTTP client for the remote /todos collection."""
