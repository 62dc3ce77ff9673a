"""Discussion forum backend: content repository, notification pipeline and client."""
